"""
SyncCava - keep cava's colors in sync with the artwork of what's playing.

Usage:
    sync-cava                      # watch playerctl, update ~/.config/cava/config
    sync-cava --source spotify     # follow the Spotify account instead
    sync-cava --once               # sync the current track and exit
"""
import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

from config import CAVA, DEBUG, PLAYERCTL, SYNC, VERSION
from errors import SyncError
from logging_config import get_logger, setup_logging
from sync_loop import SyncLoop, SyncOutcome
from system_utils import shutdown_worker
from system_utils.sources import available_watchers, create_watcher
from system_utils.sources.spotify import create_spotify_client, verify_connection

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sync-cava",
        description="Sync cava's colors with the album art of the current track",
    )
    parser.add_argument('--source', choices=available_watchers(), default=SYNC["source"],
                        help='Where to read the artwork URL from (default: %(default)s)')
    parser.add_argument('--config', type=Path, default=CAVA["config_path"],
                        help='cava config file to rewrite (default: %(default)s)')
    parser.add_argument('--colors', type=int, default=SYNC["num_colors"],
                        help='Palette size to quantize to (default: %(default)s)')
    parser.add_argument('--interval', type=float, default=SYNC["poll_interval"],
                        help='Seconds between polls (default: %(default)s)')
    parser.add_argument('--player', default=PLAYERCTL["player"],
                        help='playerctl player name to follow (playerctl source only)')
    parser.add_argument('--once', action='store_true',
                        help='Sync the current artwork once and exit')
    parser.add_argument('--log-level', default=DEBUG["log_level"],
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help='Console log level (default: %(default)s)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {VERSION}')
    args = parser.parse_args(argv)
    if not 1 <= args.colors <= 256:
        parser.error("--colors must be between 1 and 256")
    if args.interval < 0:
        parser.error("--interval must not be negative")
    return args


def build_loop(args: argparse.Namespace) -> SyncLoop:
    watcher_kwargs = {}
    if args.source == "playerctl":
        watcher_kwargs = {"player": args.player, "timeout": PLAYERCTL["timeout"]}
    elif args.source == "spotify":
        client = create_spotify_client()
        verify_connection(client)
        watcher_kwargs = {"client": client}
    watcher = create_watcher(args.source, **watcher_kwargs)

    return SyncLoop(
        watcher,
        args.config,
        num_colors=args.colors,
        poll_interval=args.interval,
        process_name=CAVA["process_name"],
        reload_signal=CAVA["reload_signal"],
    )


async def main(args: argparse.Namespace) -> int:
    sync = build_loop(args)

    if args.once:
        outcome = await sync.sync_once()
        return 0 if outcome in (SyncOutcome.SYNCED, SyncOutcome.IDLE) else 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, sync.stop)
        except NotImplementedError:
            # Windows event loops don't support signal handlers
            logger.debug(f"Cannot install handler for {sig.name}, relying on KeyboardInterrupt")

    await sync.run()
    return 0


def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    setup_logging(
        console_level=args.log_level,
        file_level="DEBUG" if DEBUG["log_detailed"] else "INFO",
        console=DEBUG["log_to_console"],
        log_file=DEBUG["log_file"],
        max_bytes=DEBUG["log_rotation"]["max_bytes"],
        backup_count=DEBUG["log_rotation"]["backup_count"],
    )

    if not args.config.exists():
        logger.warning(f"{args.config} does not exist yet; every sync will fail until cava creates it")

    try:
        logger.info(f"Starting SyncCava {VERSION}...")
        return asyncio.run(main(args))
    except (SyncError, ValueError, OSError) as e:
        # Startup problems: bad credentials, unknown source, unwritable token cache
        logger.error(f"Cannot start: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt caught in main...")
        return 0
    finally:
        shutdown_worker()


if __name__ == "__main__":
    sys.exit(cli())
