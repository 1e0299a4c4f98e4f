"""Exception types shared by the client and the annotation service."""


class FocusAnnotatorError(Exception):
    """Base class for focus-annotator errors."""


class BadRequestError(FocusAnnotatorError):
    """An annotate request is missing required fields or is malformed."""

    def __init__(self, reason: str, detail: str = "") -> None:
        super().__init__(detail or reason)
        self.reason = reason


class PayloadTooLargeError(FocusAnnotatorError):
    """An annotate request exceeds the server's node or image limits."""


class ModelError(FocusAnnotatorError):
    """The external annotation model could not produce a usable answer."""


class ModelTransientError(ModelError):
    """Timeout, rate limit, or 5xx from the model endpoint. Worth retrying."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ModelResponseError(ModelError):
    """The model answered, but not with the agreed JSON shape."""


class AnnotatorServiceError(FocusAnnotatorError):
    """The annotation service was unreachable or answered with an error."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
