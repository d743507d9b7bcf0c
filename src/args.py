"""Argument parsing functionality for flutterfix."""

import argparse

from versioning.models import DuplicatePrecedence

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _add_common(parser):
    parser.add_argument("-d", "--directory",
                        dest="PROJECT_DIR",
                        help="Project directory (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=LOG_LEVELS)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="flutterfix",
        description=(
            "flutterfix - reconcile SDK versions and resolve dependency conflicts"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="command")
    subparsers.required = True

    sync = subparsers.add_parser(
        "sync",
        help="Reconcile the SDK version and fix dependency conflicts",
    )
    _add_common(sync)
    sync.add_argument("-c", "--config",
                      dest="CONFIG",
                      help="Path to a YAML config file (default: <project>/.flutterfix.yml)",
                      action="store",
                      type=str)
    sync.add_argument("--registry",
                      dest="REGISTRY_ENDPOINT",
                      help="Package registry API base URL",
                      action="store",
                      type=str)
    sync.add_argument("--runtime",
                      dest="RUNTIME_VERSION",
                      help="Runtime version used to filter candidates (default: derived from the SDK)",
                      action="store",
                      type=str)
    sync.add_argument("--timeout",
                      dest="REQUEST_TIMEOUT",
                      help="Timeout in seconds for registry requests",
                      action="store",
                      type=float)
    sync.add_argument("--command-timeout",
                      dest="COMMAND_TIMEOUT",
                      help="Timeout in seconds for pub get / pub deps",
                      action="store",
                      type=float)
    sync.add_argument("--duplicates",
                      dest="DUPLICATE_PRECEDENCE",
                      help="Which conflict wins when a package is reported more than once",
                      action="store",
                      type=str.lower,
                      choices=[p.value for p in DuplicatePrecedence])
    sync.add_argument("--prerelease",
                      dest="INCLUDE_PRERELEASE",
                      help="Allow prerelease versions as replacements",
                      action="store_true",
                      default=None)
    sync.add_argument("--no-sdk-align",
                      dest="ALIGN_SDK",
                      help="Do not rewrite the manifest SDK constraint",
                      action="store_false",
                      default=None)
    sync.add_argument("--accept-upgrade",
                      dest="ACCEPT_UPGRADE",
                      help="Explicitly accept moving a legacy project into the null-safe era",
                      action="store_true",
                      default=None)
    sync.add_argument("--keep-backup",
                      dest="KEEP_BACKUP",
                      help="Keep the manifest backup after a committed run",
                      action="store_true",
                      default=None)
    sync.add_argument("--fvm",
                      dest="USE_FVM",
                      help="Run commands through fvm (default: auto-detect)",
                      action="store_true",
                      default=None)
    sync.add_argument("--error-on-warnings",
                      dest="ERROR_ON_WARNINGS",
                      help="Exit with a non-zero status code if warnings are present.",
                      action="store_true")

    backups = subparsers.add_parser(
        "backups",
        help="List or clear manifest backups",
    )
    _add_common(backups)
    backups.add_argument("--clear",
                         dest="CLEAR",
                         help="Delete every backup of the project",
                         action="store_true")

    rollback = subparsers.add_parser(
        "rollback",
        help="Restore the manifest from a backup",
    )
    _add_common(rollback)
    rollback.add_argument("--id",
                          dest="BACKUP_ID",
                          help="Backup to restore (default: the latest)",
                          action="store",
                          type=str)

    return parser.parse_args(argv)
