"""
Request coordination: validate, check the cache, resolve, select, store.

Two locking models are supported:

* ``global``: one lock is held from cache lookup through cache store,
  including the resolver call. At most one resolution runs system-wide,
  so requests for different URLs queue behind each other.
* ``per_key``: the cache guards its own map; concurrent requests for the
  same canonical URL share one in-flight resolution while different URLs
  resolve in parallel. The shared resolution uses the pass-through headers
  of the request that started it.
"""

import asyncio
import logging
from typing import Dict, Mapping, Optional, Sequence

from redirector.config.settings import Config
from redirector.core.errors import (
    MalformedURL,
    NoFormatAvailable,
    ResolutionFailed,
    ResolutionTimeout,
    UntrustedHost,
)
from redirector.core.security import UrlValidator
from redirector.models.internal import MediaFormat, RedirectIntent, RedirectOrigin
from redirector.services.cache import ResolutionCache
from redirector.services.format import FormatSelector
from redirector.services.ytdlp import Resolver, pass_through_headers
from redirector.utils.url import safe_url_for_log

logger = logging.getLogger(__name__)

LOCK_GLOBAL = "global"
LOCK_PER_KEY = "per_key"


class RedirectCoordinator:
    """Turn (path, query, headers) into a RedirectIntent"""

    def __init__(
        self,
        config: Config,
        resolver: Resolver,
        cache: ResolutionCache,
        selector: FormatSelector,
        validator: UrlValidator,
    ):
        self.config = config
        self.resolver = resolver
        self.cache = cache
        self.selector = selector
        self.validator = validator
        self.bypass_markers = tuple(config.policy.bypass_user_agent_markers)
        self._global_lock = asyncio.Lock()
        self._inflight: Dict[str, asyncio.Task] = {}

    @property
    def cache_enabled(self) -> bool:
        return self.config.cache.enabled

    def is_bypassed(self, user_agent: Optional[str]) -> bool:
        """Desktop clients play the source page themselves"""
        if not user_agent:
            return False
        return any(marker in user_agent for marker in self.bypass_markers)

    async def handle(
        self,
        raw_path: str,
        raw_query: str,
        headers: Mapping[str, str]
    ) -> RedirectIntent:
        try:
            url, host = self.validator.validate(raw_path, raw_query)
        except MalformedURL as e:
            logger.warning(f"Failed to parse URL: {e}")
            return RedirectIntent.bad_request()
        except UntrustedHost as e:
            logger.info(f"Rejected untrusted host {e.host}")
            return RedirectIntent.not_found()

        logger.debug(f"Normalized URL: {url}")

        if self.is_bypassed(headers.get("user-agent")):
            logger.debug(f"Bypassing resolution for {url}")
            return RedirectIntent.redirect(url, RedirectOrigin.BYPASS)

        forwarded = pass_through_headers(headers, self.config.resolver.pass_through_headers)

        try:
            if self.config.policy.lock_mode == LOCK_GLOBAL:
                async with self._global_lock:
                    fmt, origin = await self._lookup_or_resolve(url, forwarded)
            else:
                fmt, origin = await self._lookup_or_share(url, forwarded)
        except ResolutionTimeout as e:
            logger.error(f"Resolver timeout for {url}: {e}")
            return self._upstream_failure(url)
        except ResolutionFailed as e:
            logger.error(f"Resolution failed for {url}: {e}")
            return self._upstream_failure(url)
        except NoFormatAvailable as e:
            logger.error(f"No format for {url}: {e}")
            return self._upstream_failure(url)

        logger.debug(f"Redirecting {url} to {safe_url_for_log(fmt.direct_url)} ({origin.value})")
        return RedirectIntent.redirect(fmt.direct_url, origin)

    def _upstream_failure(self, url: str) -> RedirectIntent:
        if self.config.policy.upstream_failure == "bad_gateway":
            return RedirectIntent.bad_gateway()
        return RedirectIntent.redirect(url, RedirectOrigin.FALLBACK)

    def _cached(self, url: str) -> Optional[MediaFormat]:
        if not self.cache_enabled:
            return None
        entry = self.cache.lookup(url)
        return entry.format if entry else None

    async def _lookup_or_resolve(self, url: str, headers: Sequence[tuple]):
        cached = self._cached(url)
        if cached is not None:
            return cached, RedirectOrigin.CACHE
        return await self._resolve_and_store(url, headers), RedirectOrigin.RESOLVED

    async def _lookup_or_share(self, url: str, headers: Sequence[tuple]):
        cached = self._cached(url)
        if cached is not None:
            return cached, RedirectOrigin.CACHE

        # No await between the lookup above and registering the task, so
        # two requests for the same URL can never both start a resolution.
        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._resolve_and_store(url, headers))
            self._inflight[url] = task
            task.add_done_callback(lambda done: self._forget(url, done))
        else:
            logger.debug(f"Joining in-flight resolution for {url}")

        # shield: a disconnecting client must not cancel the shared resolution
        return await asyncio.shield(task), RedirectOrigin.RESOLVED

    def _forget(self, url: str, task: asyncio.Task) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]

    async def _resolve_and_store(self, url: str, headers: Sequence[tuple]) -> MediaFormat:
        info = await self.resolver.resolve(url, headers)
        fmt = self.selector.select(info.formats)
        logger.info(f"Resolved {url} ({info.title!r}) to format {fmt.format_id} [{fmt.container}]")

        if self.cache_enabled and not self.cache.store(url, fmt, info):
            logger.debug(f"No expiry in resolved URL for {url}, not cached")
        return fmt
