"""
Sign-in, callback and session endpoints.
"""

from __future__ import annotations

import hmac
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse, Response

from menufic.auth import (
    SESSION_COOKIE,
    STATE_COOKIE,
    AuthOptions,
    TokenIssuer,
    build_auth_options,
    resolve_base_url,
    session_from_claims,
)
from menufic.config import Settings, get_settings
from menufic.dependencies import get_token_issuer, read_session_token, set_session_cookie
from menufic.errors import AuthError
from menufic.schemas import CredentialsPayload, SessionResponse, StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_MAX_AGE = 10 * 60


def get_auth_options(
    request: Request, settings: Settings = Depends(get_settings)
) -> AuthOptions:
    """Build auth options for this request only."""
    return build_auth_options(settings, resolve_base_url(request.headers, settings))


def _base_url(request: Request, options: AuthOptions) -> str:
    return options.base_url or str(request.base_url).rstrip("/")


def _google_redirect_uri(request: Request, options: AuthOptions) -> str:
    prefix = get_settings().api_prefix
    return f"{_base_url(request, options)}{prefix}/auth/callback/google"


@router.get("/signin/google")
def signin_google(
    request: Request, options: AuthOptions = Depends(get_auth_options)
):
    if options.google is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    state = secrets.token_urlsafe(16)
    url = options.google.authorization_url(
        _google_redirect_uri(request, options), state
    )
    response = RedirectResponse(url, status_code=302)
    response.set_cookie(
        STATE_COOKIE, state, max_age=STATE_MAX_AGE, httponly=True, samesite="lax"
    )
    return response


@router.get("/callback/google")
def callback_google(
    request: Request,
    code: str = Query(...),
    state: str = Query(...),
    options: AuthOptions = Depends(get_auth_options),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    base_url = _base_url(request, options)
    if options.google is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")

    expected_state = request.cookies.get(STATE_COOKIE) or ""
    try:
        if not expected_state or not hmac.compare_digest(
            state.encode("utf-8"), expected_state.encode("utf-8")
        ):
            raise AuthError("OAuth state mismatch")
        user = options.google.fetch_user(code, _google_redirect_uri(request, options))
    except AuthError as e:
        logger.warning("Google callback rejected: %s", e)
        return RedirectResponse(
            f"{base_url}{options.sign_in_page}?error=OAuthCallback", status_code=302
        )

    logger.info("User %s signed in with google", user.id)
    response = RedirectResponse(f"{base_url}/", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    set_session_cookie(request, response, issuer.issue(user), issuer.max_age)
    return response


@router.post("/callback/credentials", response_model=SessionResponse)
def callback_credentials(
    request: Request,
    payload: CredentialsPayload,
    response: Response,
    options: AuthOptions = Depends(get_auth_options),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    user = options.credentials.authorize({"loginKey": payload.login_key})
    if user is None:
        raise AuthError("Invalid login key")
    token = issuer.issue(user)
    set_session_cookie(request, response, token, issuer.max_age)
    logger.info("User %s signed in with credentials", user.id)
    return session_from_claims(issuer.decode(token))


@router.get("/session")
def get_session(
    request: Request,
    response: Response,
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Current session, or an empty object when signed out."""
    token = read_session_token(request)
    if not token:
        return {}
    try:
        claims = issuer.decode(token)
    except AuthError:
        return {}
    if issuer.needs_refresh(claims):
        token = issuer.refresh(claims)
        set_session_cookie(request, response, token, issuer.max_age)
        claims = issuer.decode(token)
    return SessionResponse.model_validate(session_from_claims(claims)).model_dump(
        by_alias=True
    )


@router.post("/signout", response_model=StatusResponse)
def signout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return StatusResponse(status="ok")
