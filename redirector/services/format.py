from typing import Iterable, Optional, Sequence

from redirector.core.errors import NoFormatAvailable
from redirector.models.internal import MediaFormat

DEFAULT_CONTAINERS = ("mp4",)


class FormatSelector:
    """Pick the single format to redirect to"""

    def __init__(self, accepted_containers: Iterable[str] = DEFAULT_CONTAINERS):
        self.accepted_containers = frozenset(accepted_containers)

    def select(self, formats: Sequence[MediaFormat]) -> MediaFormat:
        """
        Choose a format in resolver order:
        the last accepted-container format carrying both video and audio,
        else the first accepted-container format,
        else the first format of any container.
        """
        best_complete: Optional[MediaFormat] = None
        first_acceptable: Optional[MediaFormat] = None

        for f in formats:
            if f.container not in self.accepted_containers:
                continue
            if first_acceptable is None:
                first_acceptable = f
            # Later entries win; yt-dlp lists formats worst to best
            if f.is_complete:
                best_complete = f

        if best_complete is not None:
            return best_complete
        if first_acceptable is not None:
            return first_acceptable
        if formats:
            return formats[0]
        raise NoFormatAvailable("Resolver returned no formats")
