"""Restack: reassign the changes of a commit range into a new commit stack."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("restack")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
