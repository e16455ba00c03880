"""Build metadata exposed at runtime.

APP_VERSION falls back to the installed distribution's version and
GIT_COMMIT to "dev" when the CI environment does not set them.
"""

import os
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "hitster-server"


def _installed_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or "dev"
