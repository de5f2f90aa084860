from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ValidationError(AppError):
    pass


class MalformedEventError(ValidationError):
    """Inbound transport payload could not be decoded."""


class CallStateError(AppError):
    """Call operation invoked from a state that does not allow it."""


class MediaAcquisitionError(AppError):
    """Local audio device or media session could not be opened."""


class WindowClosedError(AppError):
    """Freeform send attempted outside the contact's messaging window."""


class NotConnectedError(AppError):
    pass
