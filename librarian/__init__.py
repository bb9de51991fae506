"""Release and artifact lifecycle management for client-library monorepos."""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Return the installed librarian version."""
    try:
        return version("librarian")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
