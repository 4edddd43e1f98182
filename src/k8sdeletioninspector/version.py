"""Accessors for the package's version information."""

__all__ = ("get_build_info", "get_version")

import os
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("k8s-deletion-inspector")
except PackageNotFoundError:
    __version__ = "unknown"


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_build_info() -> dict[str, str]:
    """Return the version along with the commit and build time stamped into
    the container image through the ``GIT_COMMIT`` and ``BUILD_TIME``
    environment variables.
    """
    return {
        "version": get_version(),
        "gitCommit": os.environ.get("GIT_COMMIT", "unknown"),
        "buildTime": os.environ.get("BUILD_TIME", "unknown"),
    }


if __name__ == "__main__":
    print(get_version())  # noqa: T201
