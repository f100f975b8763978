import argparse
import logging
import os
import sys
from typing import Iterable, Optional

import uvicorn

from redirector.config.settings import Config, load_config
from redirector.core.logging import setup_logging
from redirector.main import create_app

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Iterable[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="vrc-video-redirector",
        description="Video URL redirector for VRChat Quest",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to JSON config file (overrides CONFIG_PATH env).",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Bind host.",
    )
    parser.add_argument(
        "-p", "--port",
        default=os.getenv("VVR_PORT"),
        type=int,
        help="Listen port (env VVR_PORT).",
    )
    parser.add_argument(
        "-d", "--ytdlp",
        default=os.getenv("VVR_YTDLP"),
        help="Path to the yt-dlp executable (env VVR_YTDLP).",
    )
    parser.add_argument(
        "-r", "--url-root",
        default=os.getenv("VVR_URL_ROOT"),
        help="Path prefix in front of the source URL (env VVR_URL_ROOT).",
    )
    parser.add_argument(
        "-l", "--log-level",
        default=os.getenv("VVR_LOG_LEVEL"),
        type=str.upper,
        choices=["DEBUG", "INFO", "WARN", "WARNING", "ERROR", "OFF"],
        help="Log level (env VVR_LOG_LEVEL).",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Resolve every request instead of caching until expiry.",
    )

    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Overlay command line flags onto the loaded configuration"""
    data = config.model_dump()

    if args.host:
        data["server"]["host"] = args.host
    if args.port is not None:
        data["server"]["port"] = args.port
    if args.url_root:
        data["server"]["url_root"] = args.url_root
    if args.ytdlp:
        data["resolver"]["path"] = args.ytdlp
    if args.log_level:
        data["logging"]["level"] = args.log_level
    if args.no_cache:
        data["cache"]["enabled"] = False

    # re-validate so flag values get the same checks as file/env values
    return Config.model_validate(data)


def main(argv: Optional[Iterable[str]] = None) -> None:
    """Process entrypoint: load config once, then serve"""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    config = apply_overrides(load_config(args.config), args)
    setup_logging(config.logging)

    logger.info(f"resolver: {config.resolver.path}")
    logger.info(f"url root: {config.server.url_root}")

    app = create_app(config)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
        access_log=config.logging.level == "DEBUG",
    )


if __name__ == "__main__":
    main()
