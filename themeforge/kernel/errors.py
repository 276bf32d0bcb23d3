"""
ThemeForge Kernel - Exceptions

Raised by the compiler, packager and editor. The backend maps them onto
HTTP status codes; nothing inside the kernel catches them except to clean up.
"""

from __future__ import annotations


class ThemeForgeError(Exception):
    """Base class for every kernel error."""

    pass


class ValidationError(ThemeForgeError):
    """Malformed theme, page or block input. Nothing was written."""

    pass


class NotFoundError(ThemeForgeError):
    """Theme, page or block id does not exist."""

    pass


class ConflictError(ThemeForgeError):
    """Name or catalog slug already taken. Raised before any artifact write."""

    pass


class PackagingError(ThemeForgeError):
    """Filesystem or archive failure while writing artifacts."""

    pass
