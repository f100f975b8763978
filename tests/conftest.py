import asyncio
from typing import Dict, List, Optional

import pytest

from redirector.config.settings import Config
from redirector.core.errors import ResolutionFailed
from redirector.models.internal import MediaFormat, MediaInfo

WATCH_PATH = "www.youtube.com/watch"
WATCH_URL = "https://www.youtube.com/watch?v=abc123"
EXPIRE_AT = 4102444800  # 2100-01-01


def make_format(
    format_id: str = "18",
    ext: str = "mp4",
    vcodec: Optional[str] = "avc1.42001E",
    acodec: Optional[str] = "mp4a.40.2",
    expire: Optional[int] = EXPIRE_AT,
) -> MediaFormat:
    url = f"https://rr1.googlevideo.com/videoplayback?itag={format_id}&sig=XYZ"
    if expire is not None:
        url += f"&expire={expire}"
    return MediaFormat(format_id=format_id, ext=ext, url=url, vcodec=vcodec, acodec=acodec)


def make_info(*formats: MediaFormat, video_id: str = "abc123") -> MediaInfo:
    return MediaInfo(
        id=video_id,
        title="Test video",
        description="",
        duration=212,
        webpage_url=f"https://www.youtube.com/watch?v={video_id}",
        formats=formats,
    )


class StubResolver:
    """Records calls and how many resolutions overlapped"""

    def __init__(self, info: Optional[MediaInfo] = None, delay: float = 0.0):
        self.info = info or make_info(make_format())
        self.delay = delay
        self.error: Optional[Exception] = None
        self.results: Dict[str, MediaInfo] = {}
        self.calls: List[tuple] = []
        self.active = 0
        self.max_active = 0

    async def resolve(self, url, headers=()):
        self.calls.append((url, list(headers)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.results.get(url, self.info)
        finally:
            self.active -= 1


class FailingResolver(StubResolver):
    def __init__(self):
        super().__init__()
        self.error = ResolutionFailed("yt-dlp exited with 1")


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def resolver() -> StubResolver:
    return StubResolver()


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
