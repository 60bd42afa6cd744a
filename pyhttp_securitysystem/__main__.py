"""
Run an HTTP security system accessory from the command line.

Usage:
    python -m pyhttp_securitysystem config.json [--once] [-v]

Credentials missing from the config file are taken from
HTTP_SECSYS_USERNAME / HTTP_SECSYS_PASSWORD (a .env file is honored).
"""
import argparse
import asyncio
import dataclasses
import logging
import os

import aiohttp
from dotenv import load_dotenv

from .accessory import HttpSecuritySystemAccessory
from .config import AccessoryConfig, load_config
from .constants import ENV_PASSWORD, ENV_USERNAME
from .exceptions import SecuritySystemError
from .reader import state_name


class ConsoleService:
    """Prints every state the accessory pushes."""

    def update_current_state(self, state: int) -> None:
        print(f"🔔 Current state: {state_name(state)} ({state})")

    def update_target_state(self, state: int) -> None:
        print(f"🎯 Target state: {state_name(state)} ({state})")


def apply_env_credentials(config: AccessoryConfig) -> AccessoryConfig:
    """Fill in credentials from the environment when the config has none."""
    if config.auth.is_configured:
        return config
    username = os.getenv(ENV_USERNAME, "").strip()
    if not username:
        return config
    auth = dataclasses.replace(
        config.auth,
        username=username,
        password=os.getenv(ENV_PASSWORD, ""),
    )
    return dataclasses.replace(config, auth=auth)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pyhttp_securitysystem", description=__doc__.splitlines()[1])
    parser.add_argument("config", help="accessory config JSON file")
    parser.add_argument("--once", action="store_true", help="read the state once and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


async def run(config: AccessoryConfig, once: bool = False) -> None:
    async with aiohttp.ClientSession() as http_session:
        accessory = HttpSecuritySystemAccessory(config, http_session, ConsoleService())
        print(f"⏳ Reading state of '{accessory.name}'...")

        for label, getter in (("Current", accessory.get_current_state), ("Target", accessory.get_target_state)):
            try:
                state = await getter()
            except SecuritySystemError as e:
                print(f"⚠ Could not read {label.lower()} state: {e}")
                continue
            if state is None:
                print(f"  {label} state: not configured")
            else:
                print(f"  {label} state: {state_name(state)} ({state})")

        if once:
            return
        if not config.polling.enabled:
            print("ℹ Polling is disabled in the config, nothing more to do")
            return

        await accessory.start()
        print(f"✓ Polling every {config.polling.interval_ms} ms, Ctrl-C to stop")
        try:
            await asyncio.Event().wait()
        finally:
            await accessory.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = apply_env_credentials(load_config(args.config))
    except SecuritySystemError as e:
        print(f"❌ Could not load config: {e}")
        return 1

    try:
        asyncio.run(run(config, once=args.once))
    except KeyboardInterrupt:
        print("\n⏹ Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
