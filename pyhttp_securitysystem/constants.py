from enum import IntEnum

DEFAULT_TIMEOUT = 20
DEFAULT_HTTP_METHOD = "GET"
DEFAULT_POLL_INTERVAL_MS = 30000
DEFAULT_NAME = "Security System"

# ========== CONFIG KEYS ==========
CONF_NAME = "name"
CONF_URLS = "urls"
CONF_URL = "url"
CONF_BODY = "body"
CONF_HEADERS = "headers"
CONF_HTTP_METHOD = "http_method"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_IMMEDIATELY = "immediately"
CONF_DEBUG = "debug"
CONF_POLLING = "polling"
CONF_POLL_INTERVAL = "pollInterval"
CONF_MAPPERS = "mappers"
CONF_TIMEOUT = "timeout"

# ========== URL ACTIONS ==========
URL_STAY = "stay"
URL_AWAY = "away"
URL_NIGHT = "night"
URL_DISARM = "disarm"
URL_READ_CURRENT_STATE = "readCurrentState"
URL_READ_TARGET_STATE = "readTargetState"

# ========== MAPPERS ==========
MAPPER_STATIC = "static"
MAPPER_REGEX = "regex"
MAPPER_XPATH = "xpath"

# ========== ENVIRONMENT ==========
ENV_USERNAME = "HTTP_SECSYS_USERNAME"
ENV_PASSWORD = "HTTP_SECSYS_PASSWORD"
ENV_HTTP_LOG_FILE = "HTTP_SECSYS_HTTP_LOG_FILE"
ENV_HTTP_LOG_HEADERS = "HTTP_SECSYS_HTTP_LOG_HEADERS"
ENV_HTTP_LOG_BODY = "HTTP_SECSYS_HTTP_LOG_BODY"
HTTP_LOGGER_NAME = "pyhttp_securitysystem.http"
HTTP_LOG_BODY_LIMIT = 500

# ========== HEADERS ==========
HDR_AUTHORIZATION = "Authorization"
HDR_WWW_AUTHENTICATE = "WWW-Authenticate"

HTTP_401_UNAUTHORIZED = 401


# ========== SECURITY STATES ==========
# Wire integers are the HomeKit characteristic values:
# 0 = stay, 1 = away, 2 = night, 3 = disarmed, 4 = alarm triggered (read only)
class SecurityState(IntEnum):
    STAY_ARM = 0
    AWAY_ARM = 1
    NIGHT_ARM = 2
    DISARM = 3
    ALARM_TRIGGERED = 4


TARGET_STATES = frozenset({
    SecurityState.STAY_ARM,
    SecurityState.AWAY_ARM,
    SecurityState.NIGHT_ARM,
    SecurityState.DISARM,
})

STATE_NAMES = {
    0: "stay_arm",
    1: "away_arm",
    2: "night_arm",
    3: "disarm",
    4: "alarm_triggered",
}

# Target state -> urls.* key of the write action
WRITE_ACTIONS = {
    SecurityState.STAY_ARM: URL_STAY,
    SecurityState.AWAY_ARM: URL_AWAY,
    SecurityState.NIGHT_ARM: URL_NIGHT,
    SecurityState.DISARM: URL_DISARM,
}
