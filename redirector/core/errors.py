"""Failure kinds raised while turning a request path into a redirect.

Every failure is local to a single request. The coordinator converts these
into response intents; none of them escapes to the HTTP layer.
"""

from typing import Optional


class RedirectorError(Exception):
    """Base class for request-level failures"""


class MalformedURL(RedirectorError):
    """The requested path cannot be parsed as a URL"""


class UntrustedHost(RedirectorError):
    """The URL host is not in the trusted domain set"""

    def __init__(self, host: str):
        super().__init__(f"Host not trusted: {host}")
        self.host = host


class ResolutionFailed(RedirectorError):
    """The resolver exited non-zero or produced unusable output"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ResolutionTimeout(ResolutionFailed):
    """The resolver did not finish within the configured timeout"""

    def __init__(self, timeout: float):
        super().__init__(f"Resolver timed out after {timeout:g}s")
        self.timeout = timeout


class NoFormatAvailable(RedirectorError):
    """The resolver succeeded but returned no formats"""
