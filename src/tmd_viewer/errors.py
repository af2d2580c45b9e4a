"""Error types raised while talking to the archive server."""


class ViewerError(Exception):
    pass


class FetchError(ViewerError):
    pass


class NetworkError(FetchError):
    pass


class ServerError(FetchError):
    def __init__(self, status_code: int, message: str = "", code: str | None = None):
        self.status_code = status_code
        self.code = code
        detail = f": {message}" if message else ""
        super().__init__(f"Server returned {status_code}{detail}")


class DecodeError(FetchError):
    """Response body or hash fragment could not be decoded."""
