"""Errors raised while listing, comparing and writing templates."""

from __future__ import annotations


class TemplateSyncError(Exception):
    """Base class for all index-templates failures."""


class InvalidTemplateContent(TemplateSyncError, ValueError):
    """Raised when a template document cannot be normalized."""


class DeclarationError(TemplateSyncError):
    """Raised when the declared templates file is unusable."""


class RemoteError(TemplateSyncError):
    """A request against the template service failed."""

    def __init__(
        self, message: str, *, url: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RemoteUnavailable(RemoteError):
    """Raised when the template listing cannot be fetched."""


class RemoteWriteFailed(RemoteError):
    """Raised when a template write (or delete) is rejected or never lands."""


class MalformedResponse(RemoteError):
    """Raised when the listing body is not a JSON object."""
