"""CLI entry point for the Galaxy FDS client."""

import argparse
import logging
import sys
import time
from pathlib import Path

from galaxy_fds import metrics
from galaxy_fds.auth import SigningEngine, build_canonical_string, format_date
from galaxy_fds.client import GalaxyFDSClient
from galaxy_fds.config import FDSConfig, apply_env_overrides, load_config
from galaxy_fds.errors import FDSError, ServiceError
from galaxy_fds.logging_config import configure_logging
from galaxy_fds.models import Credential


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="galaxy-fds",
        description="Galaxy FDS - request signing and listing client",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: environment only)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    presign = sub.add_parser("presign", help="Generate a presigned URI")
    presign.add_argument("bucket")
    presign.add_argument("object")
    presign.add_argument(
        "--expires-in",
        type=int,
        default=3600,
        help="Validity in seconds from now (default: 3600)",
    )
    presign.add_argument("--method", default="GET", help="HTTP method (default: GET)")

    canonical = sub.add_parser(
        "canonical", help="Print the canonical string and Authorization header"
    )
    canonical.add_argument("method")
    canonical.add_argument("path", help="Resource path, e.g. /bucket/object")
    canonical.add_argument("--subresource", default=None, help="acl, metadata or quota")
    canonical.add_argument("--date", default=None, help="Date header (default: now)")
    canonical.add_argument("--content-type", default=None)

    ls = sub.add_parser("ls", help="List every object of a bucket")
    ls.add_argument("bucket")
    ls.add_argument("--prefix", default="")
    ls.add_argument("--delimiter", default=None)

    return parser.parse_args(argv)


def _credential(config: FDSConfig) -> Credential:
    return Credential(
        access_key_id=config.credential.access_key_id,
        access_secret=config.credential.access_secret,
    )


def _cmd_presign(args: argparse.Namespace, config: FDSConfig) -> int:
    engine = SigningEngine(config.client.sign_algorithm)
    uri = engine.presign(
        args.method,
        f"/{args.bucket}/{args.object}",
        _credential(config),
        int(time.time()) + args.expires_in,
        base_uri=config.client.endpoint,
    )
    print(uri)
    return 0


def _cmd_canonical(args: argparse.Namespace, config: FDSConfig) -> int:
    engine = SigningEngine(config.client.sign_algorithm)
    headers = {"Date": args.date or format_date()}
    if args.content_type:
        headers["Content-Type"] = args.content_type
    canonical = build_canonical_string(args.method, args.path, args.subresource, headers)
    signature = engine.sign(canonical, config.credential.access_secret)
    print(repr(canonical))
    print(engine.authorization_header(config.credential.access_key_id, signature))
    return 0


def _cmd_ls(args: argparse.Namespace, config: FDSConfig) -> int:
    with GalaxyFDSClient.from_config(config) as client:
        page = client.list_objects(args.bucket, args.prefix, args.delimiter)
        while True:
            if isinstance(page, ServiceError):
                print(f"error: status={page.status_code} {page.reason}", file=sys.stderr)
                return 1
            for prefix in page.common_prefixes:
                print(prefix)
            for item in page.items:
                print(f"{item.size:>12} {item.object_name}")
            if not page.has_more:
                return 0
            page = client.list_next_batch_of_objects(page, args.delimiter)


_COMMANDS = {
    "presign": _cmd_presign,
    "canonical": _cmd_canonical,
    "ls": _cmd_ls,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the galaxy-fds CLI.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Process exit status.
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    logger = logging.getLogger("galaxy_fds")

    try:
        if args.config is not None:
            config = load_config(args.config)
        else:
            config = apply_env_overrides(FDSConfig())
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        return 1
    except FDSError as exc:
        logger.error("Failed to load config: %s", exc)
        return 1

    configure_logging(
        level=args.log_level or config.logging.level,
        fmt=args.log_format or config.logging.format,
    )
    if config.metrics.enabled:
        metrics.init_metrics()

    try:
        return _COMMANDS[args.command](args, config)
    except FDSError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
