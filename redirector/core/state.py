from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from redirector.config.settings import Config
from redirector.core.security import UrlValidator
from redirector.services.cache import ResolutionCache
from redirector.services.format import FormatSelector
from redirector.services.redirect import RedirectCoordinator
from redirector.services.ytdlp import Resolver, YtDlpResolver


@dataclass
class AppContext:
    """Everything a request needs, built once at startup"""
    config: Config
    cache: ResolutionCache
    resolver: Resolver
    coordinator: RedirectCoordinator
    ytdlp_version: str = "unknown"


def build_context(config: Config, resolver: Optional[Resolver] = None) -> AppContext:
    resolver = resolver or YtDlpResolver(config.resolver)
    cache = ResolutionCache(max_entries=config.cache.max_entries)
    coordinator = RedirectCoordinator(
        config=config,
        resolver=resolver,
        cache=cache,
        selector=FormatSelector(config.policy.accepted_containers),
        validator=UrlValidator(config.policy.trusted_domains),
    )
    return AppContext(config=config, cache=cache, resolver=resolver, coordinator=coordinator)


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the application context"""
    return request.app.state.context
