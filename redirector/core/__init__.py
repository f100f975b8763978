from .errors import (
    MalformedURL,
    NoFormatAvailable,
    RedirectorError,
    ResolutionFailed,
    ResolutionTimeout,
    UntrustedHost,
)
from .security import UrlValidator, normalize_url

__all__ = [
    "MalformedURL",
    "NoFormatAvailable",
    "RedirectorError",
    "ResolutionFailed",
    "ResolutionTimeout",
    "UntrustedHost",
    "UrlValidator",
    "normalize_url",
]
