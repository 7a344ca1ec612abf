#!/usr/bin/env python3
"""CLI for the static redirector.

Usage:
    python -m cli <command>

Commands:
    check-config  Compile redirect rules from the environment and list them
    serve         Validate the rules, then run the HTTP server
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from core.logger import configure_logging, get_logger
from services.redirect_rules import RedirectConfigError, RedirectIndex, compile_rules

logger = get_logger(__name__)


def _compile_from_environment() -> RedirectIndex | None:
    load_dotenv()
    try:
        return compile_rules(dict(os.environ))
    except RedirectConfigError as e:
        logger.error("config.invalid", rule=e.rule_name, key=e.key, error=str(e))
        return None


def cmd_check_config() -> int:
    """Compile redirect rules and list them."""
    index = _compile_from_environment()
    if index is None:
        return 1

    for rule in index.rules:
        logger.info(
            "redirect.rule",
            rule=rule.name,
            paths=list(rule.sources),
            target=rule.target,
            code=rule.code,
            js_only=rule.js_only,
            preserve_params=rule.preserve_params,
        )
    logger.info("config.valid", rules=len(index.rules), paths=len(index))
    return 0


def cmd_serve() -> int:
    """Run the server on SR_REDIR__HOST."""
    import uvicorn

    from core.config import get_settings

    if _compile_from_environment() is None:
        return 1

    settings = get_settings()
    logger.info("server.starting", host=settings.bind_host, port=settings.bind_port)
    # log_config=None keeps our structlog handler on the root logger
    uvicorn.run(
        "main:app",
        host=settings.bind_host,
        port=settings.bind_port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Static redirector CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "check-config",
        help="Compile redirect rules from the environment and list them",
    )
    subparsers.add_parser(
        "serve",
        help="Validate redirect rules, then run the HTTP server",
    )

    args = parser.parse_args(argv)
    configure_logging()

    if args.command == "check-config":
        return cmd_check_config()
    elif args.command == "serve":
        return cmd_serve()
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
