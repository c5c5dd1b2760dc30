"""
Main entry point for the Media Normalizer.

This script parses the command line, configures logging, builds the run
configuration and runs one batch over the working directory. The exit status
is 0 when no file failed, 1 when at least one file failed or the batch was
interrupted, and 2 when the configuration is invalid.
"""

import sys
from typing import Optional, Sequence

from loguru import logger

from media_normalizer.cli import get_args
from media_normalizer.config.common import configure_logger, load_config
from media_normalizer.pipeline.batch import BatchDriver

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


# Configure the logger for initial setup.
# The level is overridden once the command-line arguments are known.
configure_logger("INFO")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Runs one batch and returns the process exit status.

    1. Parses command-line arguments.
    2. Configures the global logger based on the arguments.
    3. Loads the configuration (defaults, YAML user config, arguments).
    4. Runs the batch driver and maps its summary to an exit status.
    """
    args = get_args(argv)

    effective_log_level = "DEBUG" if args.debug else args.log_level
    configure_logger(effective_log_level)

    logger.debug(f"Parsed arguments: {args}")

    try:
        config = load_config(
            config_path=args.config,
            working_dir=args.working_dir,
            ffmpeg_dir=args.ffmpeg_dir,
            processes=args.processes,
            no_fallback=args.no_fallback,
        )
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR

    logger.info(f"Normalizing files in {config.working_dir}")
    summary = BatchDriver(config, log_level=effective_log_level).run()

    if summary.all_succeeded:
        logger.success("Media Normalizer finished.")
        return EXIT_OK
    logger.warning(f"Media Normalizer finished with problems: {summary.tally()}")
    return EXIT_FAILURES


def cli_main():
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
