"""Domain exceptions raised by the service layer.

The API layer maps these to HTTP responses; workers catch them per unit of work.
"""


class ExportValidationError(ValueError):
    """Raised when an export or schedule request is rejected before queuing."""


class InvalidJobTransition(ValueError):
    """Raised when a requested status change is not a legal job transition."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move job from {current} to {target}")


class TemplateNotFoundError(LookupError):
    """Raised when a custom export references a template that does not exist."""


class DownloadError(Exception):
    """Base class for typed download-authorization outcomes.

    Each subclass carries the HTTP status the host should answer with.
    """

    status_code: int = 400
    default_message: str = "Download not allowed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidDownloadRequest(DownloadError):
    status_code = 400
    default_message = "Invalid download parameters"


class JobNotFound(DownloadError):
    status_code = 404
    default_message = "Export job not found"


class InvalidDownloadToken(DownloadError):
    status_code = 403
    default_message = "Invalid download link"


class DownloadForbidden(DownloadError):
    status_code = 403
    default_message = "You are not allowed to download this file"


class ExportNotReady(DownloadError):
    status_code = 409
    default_message = "Export not yet completed"


class ExportFileMissing(DownloadError):
    status_code = 404
    default_message = "Export file not found on disk"


class DownloadExpired(DownloadError):
    status_code = 410
    default_message = "Download link has expired"
