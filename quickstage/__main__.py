"""
QuickStage Hosting API
"""

import argparse
import asyncio
import inspect
import logging
import os
import sys
from pathlib import Path

import uvicorn
from botocore.exceptions import BotoCoreError, ClientError
from uvicorn.config import LOGGING_CONFIG

from quickstage.config import ENV_PREFIX, Settings, get_settings, validate_settings
from quickstage.connections import CONNECTIONS, quickstage_connections, s3_enabled


async def _check_s3_connection():
    settings = get_settings()
    if not s3_enabled(settings):
        return
    async with quickstage_connections():
        if CONNECTIONS.s3_client is None:
            return
        try:
            await CONNECTIONS.s3_client.head_bucket(Bucket=settings.s3_bucket)
        except (ClientError, BotoCoreError) as e:
            logging.error(f"Cannot access bucket {settings.s3_bucket} at {settings.s3_endpoint}: {e}")
            return
        logging.info(f"Connected to object storage at {settings.s3_endpoint}, bucket {settings.s3_bucket}")


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, base_domain={settings.base_domain}")
    for warning in validate_settings(settings):
        logging.warning(warning)
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see quickstage/config.py for more information.\n"
        f"{' ' * 26}You can also run `python -m quickstage create-env` to create a .env file template\n"
    )

    asyncio.run(_check_s3_connection())
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("quickstage.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


def env_lines(settings: Settings, with_docs: bool = True) -> list[str]:
    """The settings as lines of a .env file, unset values commented out"""
    lines = []
    for fieldname, fieldinfo in type(settings).model_fields.items():
        if fieldname == "env_file":
            continue
        value = getattr(settings, fieldname)
        if with_docs and fieldinfo.description:
            lines.append(f"# {fieldinfo.description}")
        if value is None:
            lines.append(f"#{ENV_PREFIX}{fieldname}=")
        else:
            lines.append(f"{ENV_PREFIX}{fieldname}={value}")
        if with_docs:
            lines.append("")
    return lines


def create_env(args):
    env_file = Path(args.env_file)
    if env_file.exists():
        print(f"*** File {env_file} already exists, quitting ***")
        sys.exit(1)
    with env_file.open("w") as f:
        for line in env_lines(Settings()):
            f.write(f"{line}\n")
    os.chmod(env_file, 0o600)
    print(f"*** Created {env_file} file ***")


def show_config(_args):
    settings = get_settings()
    print(f"# Reading settings from {settings.env_file}")
    for line in env_lines(settings, with_docs=False):
        # never echo credentials
        if line.startswith(f"{ENV_PREFIX}s3_secret_key="):
            line = f"{ENV_PREFIX}s3_secret_key=********"
        print(line)
    for warning in validate_settings(settings):
        print(f"# WARNING: {warning}")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m quickstage")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the hosting API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (no auto reload)",
    )
    p.add_argument("-p", "--port", help="Port", default=8787)
    p.set_defaults(func=run)

    p = subparsers.add_parser("create-env", help="Create a .env file with all settings and their defaults")
    p.add_argument("-o", "--env-file", default=".env", help="File to create (default: .env)")
    p.set_defaults(func=create_env)

    p = subparsers.add_parser("config", help="Show the current settings")
    p.set_defaults(func=show_config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    for name in ("botocore", "aiobotocore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
