"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_WARNINGS = 3
    NO_VERSION_SIGNAL = 4
    MANUAL_DECISION = 5


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_PUB = "https://pub.dev/api/packages/"
    GITHUB_API_BASE = "https://api.github.com"
    SDK_REPOSITORY = "flutter/flutter"
    SDK_TAG_PAGES = 10
    REPO_API_PER_PAGE = 100

    MANIFEST_FILE = "pubspec.yaml"
    METADATA_FILE = ".metadata"
    FVM_CONFIG_FILE = ".fvm/fvm_config.json"
    FVMRC_FILE = ".fvmrc"
    FVM_DIR = ".fvm"
    CONFIG_FILE = ".flutterfix.yml"
    BACKUP_DIR = ".flutterfix/backups"
    BACKUP_METADATA_FILE = "metadata.json"

    RESOLUTION_COMMAND = ["flutter", "pub", "get"]
    DEPS_COMMAND = ["flutter", "pub", "deps", "--json"]
    FVM_PREFIX = ["fvm"]

    # SDK packages never queried on the registry
    SDK_PACKAGES = ["flutter", "flutter_test", "flutter_driver", "flutter_localizations"]

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "FLUTTERFIX_LOG_LEVEL"
    REQUEST_TIMEOUT = 120  # Timeout in seconds for all HTTP requests
    COMMAND_TIMEOUT_SEC = 600  # Timeout in seconds for pub get / pub deps
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    REGISTRY_MAX_WORKERS = 4
