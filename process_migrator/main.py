"""Main entry point for the process migrator.

This script provides a unified interface for exporting a process, importing
a previously exported process, or migrating a process in one run.
"""

import argparse
import sys
from pathlib import Path

from process_migrator.config import DEFAULT_CONFIG_FILE, logger, setup_logging
from process_migrator.config_loader import load_configuration, write_default_configuration
from process_migrator.models.configuration import Mode
from process_migrator.models.migration_error import CancellationError, ConfigurationError
from process_migrator.utils.cancellation import CancellationToken, KeypressListener

MODE_HELP = {
    Mode.EXPORT: "Export a process from the source account to the process file",
    Mode.IMPORT: "Import the process file into the target account",
    Mode.MIGRATE: "Export from the source account and import into the target account",
}


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog="process-migrator",
        description="Copy work item tracking processes between Azure DevOps accounts",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    for mode in Mode:
        mode_parser = subparsers.add_parser(mode.value, help=MODE_HELP[mode])
        mode_parser.add_argument(
            "-c",
            "--config",
            type=Path,
            default=DEFAULT_CONFIG_FILE,
            help=f"Configuration file (default: {DEFAULT_CONFIG_FILE})",
        )
        mode_parser.add_argument(
            "--source-token",
            help="Personal access token for the source account, overrides the configuration",
        )
        mode_parser.add_argument(
            "--target-token",
            help="Personal access token for the target account, overrides the configuration",
        )
        mode_parser.add_argument(
            "--overwrite-process-on-target",
            action="store_true",
            help="Delete a process with the same name on the target account before importing",
        )

    init_parser = subparsers.add_parser("init-config", help="Write a default configuration file")
    init_parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Where to write the configuration (default: {DEFAULT_CONFIG_FILE})",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the process migrator and exit with the run's exit code."""
    # Import lazily so that --help does not pay for the REST stack
    from process_migrator.migration import EXIT_CANCELLED, EXIT_FAILURE, exit_code_for, run_migration  # noqa: PLC0415

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FAILURE)

    if args.command == "init-config":
        if write_default_configuration(args.path):
            logger.success("Default configuration written to '%s'.", args.path)
            sys.exit(0)
        logger.error("Configuration file '%s' already exists.", args.path)
        sys.exit(EXIT_FAILURE)

    mode = Mode(args.command)
    try:
        configuration = load_configuration(args.config, mode, args.source_token, args.target_token)
    except ConfigurationError as e:
        logger.error(e.message)
        sys.exit(EXIT_FAILURE)

    options = configuration.options
    setup_logging(options.log_level, options.log_filename)
    logger.info("Full log is sent to '%s'", Path(options.log_filename).resolve())

    token = CancellationToken()
    listener = KeypressListener(token)
    listener.start()
    try:
        result = run_migration(
            mode,
            configuration,
            overwrite_process_on_target=args.overwrite_process_on_target,
            token=token,
        )
    except KeyboardInterrupt:
        logger.warning(CancellationError().message)
        sys.exit(EXIT_CANCELLED)
    finally:
        listener.stop()

    sys.exit(exit_code_for(result))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.warning(CancellationError().message)
        sys.exit(130)
