from .internal import (
    CacheEntry,
    IntentKind,
    MediaFormat,
    MediaInfo,
    RedirectIntent,
    RedirectOrigin,
)

__all__ = [
    "CacheEntry",
    "IntentKind",
    "MediaFormat",
    "MediaInfo",
    "RedirectIntent",
    "RedirectOrigin",
]
