"""Command-line entry point: provision repositories and serve triggers."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from git_sync.config import Config
from git_sync.endpoint import TriggerEndpoint, TriggerServer
from git_sync.errors import GitSyncError
from git_sync.manager import RepoManager

logger = logging.getLogger("git_sync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-sync",
        description="Keep local working copies of git repositories in sync with upstream.",
    )
    parser.add_argument("--config", "-c", type=Path, required=True, help="Path to JSON configuration")
    parser.add_argument("--host", help="Override the trigger server bind address")
    parser.add_argument("--port", type=int, help="Override the trigger server port")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--once", action="store_true", help="Sync every repository once and exit")
    return parser


async def serve(config: Config, once: bool = False) -> None:
    """Provision the manager, then serve triggers until cancelled."""
    manager = await RepoManager.create(config)
    if once:
        await manager.stop()
        return

    server = TriggerServer(TriggerEndpoint(manager), config.server, manager=manager)
    await manager.start()
    try:
        await server.run_forever()
    finally:
        await manager.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = getattr(logging, args.log_level)
    logging.getLogger("git_sync").setLevel(level)
    for name in ("git_sync.manager", "git_sync.scheduler", "git_sync.endpoint"):
        logging.getLogger(name).setLevel(level)

    try:
        config = Config.from_file(args.config)
    except (OSError, ValueError) as e:
        print(f"ERROR: failed loading {args.config}: {e}", file=sys.stderr)
        return 1

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    try:
        asyncio.run(serve(config, once=args.once))
    except KeyboardInterrupt:
        return 0
    except (GitSyncError, OSError) as e:
        print(f"ERROR: provisioning failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Provisioning failed")
        print(f"ERROR: provisioning failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
