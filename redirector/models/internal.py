from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

NO_TRACK = "none"


class MediaFormat(BaseModel):
    """One direct media variant as reported by the resolver"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    format_id: str = ""
    container: str = Field(default="", alias="ext")
    direct_url: str = Field(alias="url", min_length=1)
    video_codec: Optional[str] = Field(default=None, alias="vcodec")
    audio_codec: Optional[str] = Field(default=None, alias="acodec")

    @property
    def has_video(self) -> bool:
        return self.video_codec != NO_TRACK

    @property
    def has_audio(self) -> bool:
        return self.audio_codec != NO_TRACK

    @property
    def is_complete(self) -> bool:
        return self.has_video and self.has_audio


class MediaInfo(BaseModel):
    """Resolver document for one source page (formats keep resolver order)"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[float] = None
    source_page_url: Optional[str] = Field(default=None, alias="webpage_url")
    formats: Tuple[MediaFormat, ...] = ()


@dataclass(frozen=True)
class CacheEntry:
    """Cached resolution, valid while expires_at is in the future"""
    expires_at: float
    format: MediaFormat
    info: MediaInfo


class IntentKind(str, Enum):
    REDIRECT = "redirect"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    BAD_GATEWAY = "bad_gateway"


class RedirectOrigin(str, Enum):
    CACHE = "cache"
    RESOLVED = "resolved"
    BYPASS = "bypass"
    FALLBACK = "fallback"


class RedirectIntent(BaseModel):
    """Response intent (separated from HTTP concerns)"""
    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    location: Optional[str] = None
    origin: Optional[RedirectOrigin] = None

    @classmethod
    def redirect(cls, location: str, origin: RedirectOrigin) -> "RedirectIntent":
        return cls(kind=IntentKind.REDIRECT, location=location, origin=origin)

    @classmethod
    def bad_request(cls) -> "RedirectIntent":
        return cls(kind=IntentKind.BAD_REQUEST)

    @classmethod
    def not_found(cls) -> "RedirectIntent":
        return cls(kind=IntentKind.NOT_FOUND)

    @classmethod
    def bad_gateway(cls) -> "RedirectIntent":
        return cls(kind=IntentKind.BAD_GATEWAY)
