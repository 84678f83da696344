"""
Exceptions shared by the store, image store and services.
"""


class NotFoundError(LookupError):
    """A record does not exist or is not owned by the caller."""


class ImageStoreError(RuntimeError):
    """The image store rejected or failed an upload or delete."""


class InvalidImageError(ValueError):
    """An image payload could not be decoded."""


class AuthError(Exception):
    """Credentials or session token were missing or rejected."""
