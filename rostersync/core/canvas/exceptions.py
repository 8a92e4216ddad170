"""Canvas-specific exceptions for error handling."""


class CanvasError(Exception):
    """Base exception for all Canvas operations."""
    pass


class CanvasAPIError(CanvasError):
    """HTTP error from the Canvas REST API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class CanvasConnectionError(CanvasError):
    """Canvas could not be reached (DNS, refused connection, timeout)."""
    pass
