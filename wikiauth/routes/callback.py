"""Verification callback route. The wiki provider redirects users here."""

from __future__ import annotations

import logging
from html import escape

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from wikiauth.middleware.rate_limit import RateLimiter
from wikiauth.services.callback_service import CallbackOutcome, CallbackService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["callback"])

_PAGES: dict[CallbackOutcome, tuple[int, str, str]] = {
    CallbackOutcome.LINKED: (
        200,
        "Account linked",
        "Your Wikimedia account is now linked to Discord. You can close this page.",
    ),
    CallbackOutcome.ALREADY_LINKED: (
        200,
        "Already linked",
        "Your Discord account is already linked to a Wikimedia account. You can close this page.",
    ),
    CallbackOutcome.INVALID_TOKEN: (
        404,
        "Link not found",
        "This link is not valid. Run the auth command in Discord again to get a new one.",
    ),
    CallbackOutcome.EXPIRED: (
        410,
        "Link expired",
        "This link has expired. Run the auth command in Discord again to get a new one.",
    ),
    CallbackOutcome.IDENTITY_FETCH_FAILED: (
        502,
        "Could not verify your account",
        "We could not confirm your Wikimedia account. Please try again in a few minutes.",
    ),
    CallbackOutcome.STORAGE_FAILURE: (
        500,
        "Something went wrong",
        "Your account could not be linked because of a server error. Please try again later.",
    ),
}


def _page(status_code: int, title: str, body: str) -> HTMLResponse:
    html = (
        "<!DOCTYPE html><html><head><meta charset='utf-8'>"
        f"<title>{escape(title)}</title></head>"
        f"<body><h1>{escape(title)}</h1><p>{escape(body)}</p></body></html>"
    )
    return HTMLResponse(content=html, status_code=status_code, headers={"Cache-Control": "no-store"})


def get_callback_service(request: Request) -> CallbackService:
    return request.app.state.callback_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


@router.api_route("/callback", methods=["GET", "POST"], response_class=HTMLResponse)
async def verification_callback(
    request: Request,
    token: str | None = None,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    service: CallbackService = Depends(get_callback_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> HTMLResponse:
    """
    Receive the provider redirect carrying the link token and proof code.

    Unauthenticated. The token may arrive as `token` or as the OAuth `state`.
    Every branch renders a page; nothing here raises.
    """
    client_ip = request.client.host if request.client else "unknown"
    if not limiter.allow(f"callback:{client_ip}"):
        return _page(429, "Too many attempts", "Please wait a few minutes before trying again.")

    if error:
        # Consent denied or aborted on the provider side
        logger.info("Provider returned error %s on callback", error)
        return _page(
            400,
            "Authorization cancelled",
            "The Wikimedia authorization was not completed. Run the auth command in Discord to start again.",
        )

    outcome = await service.handle(token or state, code)
    if outcome == CallbackOutcome.INVALID_TOKEN and (not (token or state) or not code):
        return _page(400, "Invalid request", "This page needs the link from Discord. Run the auth command again.")

    return _page(*_PAGES[outcome])
