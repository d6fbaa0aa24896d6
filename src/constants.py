"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONFIG_ERROR = 1  # alias of FILE_ERROR; every startup failure exits 1


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    VERSION = "0.1.0"
    USER_AGENT = f"gemgate/{VERSION}"

    DEFAULT_HOST = "127.0.0.1"
    DEFAULT_PORT = 8080
    DEFAULT_PLATFORM = "ruby"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for upstream HTTP requests

    DEPENDENCIES_PATH = "/api/v1/dependencies"
    GEMS_PATH = "/gems/"
    GEM_SUFFIX = ".gem"
    HEALTH_PATH = "/_gemgate/health"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "GEMGATE_LOG_LEVEL"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
