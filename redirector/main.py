import uuid
from typing import Optional

from fastapi import FastAPI, Request
from rich.console import Console

from redirector.api import health, redirect
from redirector.config.settings import Config, load_config
from redirector.core.state import build_context
from redirector.services.ytdlp import Resolver, YtDlpResolver

console = Console()


def create_app(config: Optional[Config] = None, resolver: Optional[Resolver] = None) -> FastAPI:
    """Build the application around a single, explicit context"""
    config = config or load_config()
    context = build_context(config, resolver)

    app = FastAPI(
        title=config.api.title,
        description=config.api.description,
        version=config.api.version,
        docs_url="/docs" if config.api.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if config.api.debug else None,
    )
    app.state.context = context

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    # Health first: the redirect route catches every other path
    app.include_router(health.router, tags=["Health"])
    app.include_router(redirect.build_router(config.server.url_root), tags=["Redirect"])

    @app.on_event("startup")
    async def startup_event():
        if isinstance(context.resolver, YtDlpResolver):
            context.ytdlp_version = await context.resolver.version()

        console.print(f"[green]✓ resolver: {config.resolver.path} ({context.ytdlp_version})[/green]")
        console.print(f"[green]✓ url root: {config.server.url_root}[/green]")
        if config.cache.enabled:
            console.print(f"[green]✓ cache enabled (max {config.cache.max_entries} entries)[/green]")
        else:
            console.print("[yellow]⚠ cache disabled[/yellow]")
        console.print(f"[dim]lock mode: {config.policy.lock_mode}[/dim]")

    @app.on_event("shutdown")
    async def shutdown_event():
        context.cache.clear()
        console.print("[dim]✓ cache cleared[/dim]")

    return app
