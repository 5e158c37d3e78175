"""Error taxonomy shared by the site resolution, ingestion and API layers."""


class ValidationError(ValueError):
    """Bad input from the caller. The message is shown to the user."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(LookupError):
    """The requested project or object does not exist."""


class ConflictError(ValueError):
    """The requested resource cannot be created because of existing state."""


class UpstreamError(RuntimeError):
    """An external service (object storage, DNS, ...) failed. Details are logged, never returned."""
