"""flutterfix: reconcile Flutter SDK versions and resolve pub dependency conflicts.

Entry point for the ``flutterfix`` console script.
"""

import logging
import sys

from args import parse_args
from cli_backup import run_backups, run_rollback
from cli_sync import run_sync
from common.logging_utils import configure_logging, extra_context, is_debug_enabled

COMMANDS = {
    "sync": run_sync,
    "backups": run_backups,
    "rollback": run_rollback,
}


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main", command=args.COMMAND)
        )

    code = COMMANDS[args.COMMAND](args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="main",
                outcome=code.name.lower()
            )
        )
    sys.exit(code.value)


if __name__ == "__main__":
    main()
