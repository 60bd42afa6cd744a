class SecuritySystemError(Exception):
    """Base exception"""


class SecuritySystemConfigError(SecuritySystemError):
    """Invalid or incomplete accessory configuration"""


class SecuritySystemNetworkError(SecuritySystemError):
    """Network error talking to the remote endpoint"""


class SecuritySystemMapperError(SecuritySystemError):
    """Response body could not be parsed by a mapper"""


class SecuritySystemInvalidState(SecuritySystemError):
    """Response did not reduce to a security state code"""
