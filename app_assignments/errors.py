from typing import Optional


class GraphAPIError(RuntimeError):
    """A Graph request came back with an error status."""

    def __init__(self, status_code: int, body: str, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"Graph API error {status_code}: {body}")


class AuthenticationError(RuntimeError):
    pass


class FetchFailed(RuntimeError):
    """
    A paged listing was aborted. `retrieved` is how many items had already
    been collected; they are discarded, never handed back as a full result.
    """

    def __init__(self, url: str, retrieved: int, cause: Optional[Exception] = None):
        self.url = url
        self.retrieved = retrieved
        self.cause = cause
        super().__init__(
            f"Listing {url} failed after {retrieved} item(s) were retrieved: {cause}"
        )


class NotFound(LookupError):
    pass


class InvalidSelection(ValueError):
    pass


class RequestFailed(RuntimeError):
    """A single Graph request never got an answer (connection, timeout)."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
