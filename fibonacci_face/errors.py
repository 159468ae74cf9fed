"""Exception hierarchy for the face analyzer.

Every error carries a short user-facing message as its string form; the API
layer returns it unchanged as the response detail.
"""


class FaceAnalyzerError(Exception):
    """Base exception for all analyzer errors."""
    pass


class InputError(FaceAnalyzerError):
    """The user supplied no image or an image that cannot be used."""
    pass


class UnsupportedType(InputError):
    """Raised when an uploaded file is not a JPEG or PNG."""

    def __init__(self, message, mime_type=None):
        super().__init__(message)
        self.mime_type = mime_type


class InputRequired(InputError):
    """Raised when an operation needs an image and none is present."""
    pass


class UnreadableImage(InputError):
    """Raised when an image payload cannot be decoded."""
    pass


class ConfigurationError(FaceAnalyzerError):
    """Raised when the service credential is missing."""
    pass


class ServiceValidationError(FaceAnalyzerError):
    """The AI service rejected the photo (multiple faces, low quality, no face)."""

    def __init__(self, kind, message):
        super().__init__(message)
        self.kind = kind


class TransportOrParseError(FaceAnalyzerError):
    pass


class TransportError(TransportOrParseError):
    """Raised when the call to the AI service itself fails."""
    pass


class ResponseParseError(TransportOrParseError):
    """Raised when the service reply is not JSON of the expected shape."""

    def __init__(self, message, raw_text=None):
        super().__init__(message)
        self.raw_text = raw_text


class ExportError(FaceAnalyzerError):
    pass


class ExportUnavailable(ExportError):
    """Raised when the rasterization or PDF libraries cannot be loaded."""
    pass


class ExportFailed(ExportError):
    """Raised when rasterizing the report or building the PDF fails."""
    pass


class CameraError(FaceAnalyzerError):
    pass


class CameraUnavailable(CameraError):
    """Raised when the capture device cannot be opened or read."""

    def __init__(self, reason, message):
        super().__init__(message)
        self.reason = reason


class InvalidTransition(FaceAnalyzerError):
    """Raised when an action is not allowed in the current application state."""
    pass
