import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from i18n_sheets import __version__
from i18n_sheets.app_config import DEFAULT_CONFIG_FILE, init_config, load_app_config
from i18n_sheets.errors import SyncError
from i18n_sheets.logging_config import LOGGER_NAME, setup_console_logger
from i18n_sheets.sync_manager import I18nSheetSync
from i18n_sheets.table_store import GoogleSheetTableStore

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-sheets",
        description="Manage i18n translations with Google Sheets"
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-c', '--config', default=DEFAULT_CONFIG_FILE, help="Path to config file")
    common.add_argument('--log-level', default=None, help="Override the configured log level (e.g. DEBUG)")

    sync_options = argparse.ArgumentParser(add_help=False)
    sync_options.add_argument('--dry-run', action='store_true', help="Show what would change without writing")

    init_parser = subparsers.add_parser('init', parents=[common], help="Create a new configuration file")
    init_parser.add_argument('--force', action='store_true', help="Overwrite an existing configuration file")

    subparsers.add_parser(
        'upload', parents=[common, sync_options],
        help="Upload translations from local files to Google Sheet"
    )
    subparsers.add_parser(
        'download', parents=[common, sync_options],
        help="Download translations from Google Sheet to local files"
    )
    return parser


async def run_sync(command: str, config_path: str, dry_run: bool, log_level: Optional[str]) -> None:
    """Load the configuration and run one sync direction."""
    app_config = load_app_config(config_path, dry_run=dry_run, log_level=log_level)
    manager = I18nSheetSync(
        app_config.sync,
        GoogleSheetTableStore(app_config.sheet),
        dry_run=app_config.dry_run
    )
    if command == 'upload':
        await manager.upload()
    else:
        await manager.download()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not logger.handlers:
        # The config file has not been read yet; report early errors on stderr.
        setup_console_logger(args.log_level or "INFO")

    try:
        if args.command == 'init':
            path = init_config(args.config, force=args.force)
            logger.info("Created configuration file '%s'.", path)
        else:
            asyncio.run(run_sync(args.command, args.config, args.dry_run, args.log_level))
    except SyncError as e:
        logger.error(str(e))
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
