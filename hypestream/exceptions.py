"""Errors surfaced to callers of the HypeStream services"""

class HypeStreamError(Exception):
    """Base class for all application errors"""

class NotFoundError(HypeStreamError):
    """Unknown session, track or user"""

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")

class UnauthorizedError(HypeStreamError):
    """Missing or mismatched identity"""

class UpstreamError(HypeStreamError):
    """Spotify returned an error, a non-2xx status or an unreadable body"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)

class ValidationError(HypeStreamError):
    """Malformed input payload"""
