"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Response

from menufic.auth import (
    SESSION_COOKIE,
    SessionUser,
    TokenIssuer,
    resolve_base_url,
    user_from_claims,
)
from menufic.categories import CategoryService
from menufic.config import get_settings
from menufic.db import IN_MEMORY_URL, MenuStore
from menufic.errors import AuthError
from menufic.menus import MenuService
from menufic.storage import ImageStore, InMemoryImageStore, S3ImageStore

_store: MenuStore | None = None
_image_store: ImageStore | None = None
_token_issuer: TokenIssuer | None = None


def get_store() -> MenuStore:
    """
    Return a singleton store so the connection pool is shared across requests.
    """
    global _store
    if _store:
        return _store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _store = MenuStore(IN_MEMORY_URL)
    else:
        _store = MenuStore(settings.database_url)
    return _store


def get_image_store() -> ImageStore:
    global _image_store
    if _image_store:
        return _image_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.image_bucket:
        _image_store = InMemoryImageStore()
    else:
        _image_store = S3ImageStore(
            bucket=settings.image_bucket,
            region=settings.image_region or "",
            endpoint=settings.image_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _image_store


def get_token_issuer() -> TokenIssuer:
    global _token_issuer
    if _token_issuer:
        return _token_issuer

    settings = get_settings()
    _token_issuer = TokenIssuer(
        secret=settings.auth_secret,
        max_age=settings.session_max_age,
        update_age=settings.session_update_age,
    )
    return _token_issuer


def get_category_service(
    store: MenuStore = Depends(get_store),
    images: ImageStore = Depends(get_image_store),
) -> CategoryService:
    return CategoryService(store, images)


def get_menu_service(
    store: MenuStore = Depends(get_store),
    images: ImageStore = Depends(get_image_store),
) -> MenuService:
    return MenuService(store, images)


def read_session_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


def get_current_user(
    request: Request,
    response: Response,
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionUser:
    """
    Resolve the signed-in user, renewing the session cookie when the token
    is older than the update age.
    """
    token = read_session_token(request)
    if not token:
        raise AuthError("Not authenticated")
    claims = issuer.decode(token)
    if issuer.needs_refresh(claims):
        set_session_cookie(request, response, issuer.refresh(claims), issuer.max_age)
    return user_from_claims(claims)


def session_cookie_is_secure(request: Request) -> bool:
    """
    Mark the session cookie Secure when the request's public base URL is https.
    Without a configured URL or forwarded proto, the request's own scheme decides.
    """
    settings = get_settings()
    if not settings.auth_url and "x-forwarded-proto" not in request.headers:
        return request.url.scheme == "https"
    return (resolve_base_url(request.headers, settings) or "").startswith("https")


def set_session_cookie(
    request: Request, response: Response, token: str, max_age: int
) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=session_cookie_is_secure(request),
    )
