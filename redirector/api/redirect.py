from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from redirector.core.logging import log_debug, log_info, log_warning
from redirector.core.state import AppContext, get_context
from redirector.models.internal import IntentKind, RedirectIntent, RedirectOrigin
from redirector.utils.url import safe_url_for_log

STATUS_TEXT = {
    IntentKind.BAD_REQUEST: (400, "Bad Request"),
    IntentKind.NOT_FOUND: (404, "Not Found"),
    IntentKind.BAD_GATEWAY: (502, "502 Bad Gateway"),
}


def to_response(intent: RedirectIntent) -> Response:
    if intent.kind == IntentKind.REDIRECT:
        return RedirectResponse(intent.location, status_code=302)
    status_code, text = STATUS_TEXT[intent.kind]
    return PlainTextResponse(text, status_code=status_code)


def build_router(url_root: str) -> APIRouter:
    """Catch-all redirect route mounted under url_root"""
    router = APIRouter()
    route_path = url_root.rstrip("/") + "/{source:path}"

    @router.api_route(route_path, methods=["GET", "HEAD"])
    async def redirect(
        request: Request,
        source: str,
        context: AppContext = Depends(get_context),
    ):
        """Redirect to the direct media URL of the source page"""
        log_debug(request, f"Path: {source}")

        intent = await context.coordinator.handle(
            source,
            request.url.query,
            request.headers,
        )

        if intent.kind != IntentKind.REDIRECT:
            log_warning(request, f"Rejected {source!r}: {intent.kind.value}")
        elif intent.origin == RedirectOrigin.FALLBACK:
            log_warning(request, f"Falling back to source page {intent.location}")
        else:
            log_info(request, f"Redirect ({intent.origin.value}) to {safe_url_for_log(intent.location)}")

        return to_response(intent)

    return router
