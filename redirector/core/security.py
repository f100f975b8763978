import re
import string
from typing import Iterable, Tuple
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from redirector.core.errors import MalformedURL, UntrustedHost

DEFAULT_SCHEME = "https"
DEFAULT_PORTS = {"http": 80, "https": 443}

UNRESERVED = frozenset(string.ascii_letters + string.digits + "-._~")
PATH_SAFE = "/:@!$&'()*+,;=-._~%"

_ESCAPE_RE = re.compile(r"%([0-9A-Fa-f]{2})")
_SLASHES_RE = re.compile(r"/{2,}")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def _normalize_escape(match: re.Match) -> str:
    char = chr(int(match.group(1), 16))
    if char in UNRESERVED:
        return char
    return "%" + match.group(1).upper()


def _remove_dot_segments(path: str) -> str:
    segments = path.split("/")
    output = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            # never pop the empty segment that carries the leading slash
            if len(output) > 1:
                output.pop()
            continue
        output.append(segment)
    if segments[-1] in (".", ".."):
        output.append("")
    return "/".join(output)


def _normalize_path(path: str) -> str:
    path = _SLASHES_RE.sub("/", path)
    path = _ESCAPE_RE.sub(_normalize_escape, path)
    path = quote(path, safe=PATH_SAFE)
    path = _remove_dot_segments(path)
    return path or "/"


def _normalize_query(raw_query: str) -> str:
    if not raw_query:
        return ""
    pairs = parse_qsl(raw_query, keep_blank_values=True)
    pairs.sort(key=lambda pair: pair[0])
    return urlencode(pairs)


def normalize_url(raw_path: str, raw_query: str = "") -> Tuple[str, str]:
    """
    Turn the requested path and raw query string into a canonical URL.
    Returns (canonical_url, host). Raises MalformedURL.
    """
    raw = raw_path.lstrip("/")
    if not raw:
        raise MalformedURL("Empty source URL")

    if not _SCHEME_RE.match(raw):
        raw = f"{DEFAULT_SCHEME}://{raw}"

    try:
        parsed = urlsplit(raw)
        port = parsed.port
    except ValueError as e:
        raise MalformedURL(str(e)) from e

    host = (parsed.hostname or "").rstrip(".")
    if not host:
        raise MalformedURL(f"No host in {raw_path!r}")

    scheme = parsed.scheme.lower()
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    if "@" in parsed.netloc:
        netloc = parsed.netloc.rpartition("@")[0] + "@" + netloc

    canonical = urlunsplit((
        scheme,
        netloc,
        _normalize_path(parsed.path),
        _normalize_query(raw_query),
        "",  # fragments never reach the server anyway
    ))
    return canonical, host


class UrlValidator:
    """
    Normalize requested URLs and enforce the trusted domain set.
    The domain set is fixed at construction and never mutated.
    """

    def __init__(self, trusted_domains: Iterable[str]):
        self.trusted_domains = frozenset(domain.lower() for domain in trusted_domains)

    def is_trusted(self, host: str) -> bool:
        return host.lower() in self.trusted_domains

    def validate(self, raw_path: str, raw_query: str = "") -> Tuple[str, str]:
        """Returns (canonical_url, host). Raises MalformedURL or UntrustedHost."""
        canonical, host = normalize_url(raw_path, raw_query)
        if not self.is_trusted(host):
            raise UntrustedHost(host)
        return canonical, host
