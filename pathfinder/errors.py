class PathFinderError(Exception):
    """Base class for every error the advisor surfaces to the user"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class InputValidationError(PathFinderError):
    """Form input rejected before any model call"""


class ModelInvocationError(PathFinderError):
    """Gemini call failed: missing key, network, auth or quota"""


class ResponseParseError(PathFinderError):
    """Gemini answered but the payload is not a usable recommendation set"""


class ChatStreamError(PathFinderError):
    """A chat turn failed before or while streaming"""
