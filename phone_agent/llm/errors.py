"""
LLM Errors
==========

Exceptions raised by the protocol gateway. Every failure of a model call
surfaces as exactly one of these, carrying a human-readable diagnostic.
"""


class LLMError(Exception):
    """Exception raised for LLM-related errors."""

    pass


class TransportError(LLMError):
    """Raised when the request never produced an HTTP response (network, timeout)."""

    pass


class ProtocolError(LLMError):
    """Raised when a response arrived but could not be understood."""

    pass


class APIStatusError(LLMError):
    """Raised when the endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
