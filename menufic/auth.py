"""
Authentication: credential providers, per-request auth options and
signed session tokens.

Options are built for each request from the settings and the resolved
callback base URL, so no request ever writes to shared process state.
"""

from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

from menufic.config import Settings
from menufic.errors import AuthError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_COOKIE = "menufic.session-token"
STATE_COOKIE = "menufic.oauth-state"
SIGN_IN_PAGE = "/auth/signin"

TEST_USER = {
    "id": "testUser",
    "name": "Test User",
    "email": "testUser@gmail.com",
    "image": "",
}


@dataclass
class SessionUser:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


def resolve_base_url(headers: Mapping[str, str], settings: Settings) -> Optional[str]:
    """
    Work out the public base URL used for OAuth callbacks.

    Order: the configured AUTH_URL, then forwarded/host request headers,
    then the platform-provided URL. None leaves the choice to the caller.
    """
    if settings.auth_url:
        return settings.auth_url.rstrip("/")

    host = headers.get("x-forwarded-host") or headers.get("host")
    if host:
        protocol = headers.get("x-forwarded-proto") or "https"
        return f"{protocol}://{host}"

    if settings.platform_url:
        return settings.platform_url.rstrip("/")

    return None


@dataclass
class GoogleProvider:
    """OAuth 2.0 authorization-code flow against Google."""

    client_id: str
    client_secret: str
    authorize_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    userinfo_url: str = "https://openidconnect.googleapis.com/v1/userinfo"
    timeout: float = 10.0

    id = "google"

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": redirect_uri,
                "response_type": "code",
                "scope": "openid email profile",
                "state": state,
            }
        )
        return f"{self.authorize_url}?{query}"

    def fetch_user(
        self, code: str, redirect_uri: str, client: Optional[httpx.Client] = None
    ) -> SessionUser:
        """Exchange an authorization code and load the user's profile."""
        http = client or httpx.Client(timeout=self.timeout)
        try:
            token_resp = http.post(
                self.token_url,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            access_token = token_resp.json()["access_token"]

            profile_resp = http.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            profile_resp.raise_for_status()
            profile = profile_resp.json()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("Google code exchange failed: %s", e)
            raise AuthError(f"Google sign-in failed: {e}") from e
        finally:
            if client is None:
                http.close()

        return SessionUser(
            id=str(profile["sub"]),
            name=profile.get("name"),
            email=profile.get("email"),
            image=profile.get("picture"),
        )


@dataclass
class CredentialsProvider:
    """Shared-secret login that yields a fixed test identity."""

    login_key: Optional[str]

    id = "credentials"

    def authorize(self, credentials: Mapping[str, str]) -> Optional[SessionUser]:
        supplied = credentials.get("loginKey") or ""
        if self.login_key and hmac.compare_digest(
            supplied.encode("utf-8"), self.login_key.encode("utf-8")
        ):
            return SessionUser(**TEST_USER)
        return None


@dataclass
class AuthOptions:
    secret: str
    max_age: int
    update_age: int
    base_url: Optional[str] = None
    google: Optional[GoogleProvider] = None
    credentials: CredentialsProvider = field(
        default_factory=lambda: CredentialsProvider(None)
    )
    sign_in_page: str = SIGN_IN_PAGE


def build_auth_options(settings: Settings, base_url: Optional[str] = None) -> AuthOptions:
    google = None
    if settings.google_client_id and settings.google_client_secret:
        google = GoogleProvider(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        )
    return AuthOptions(
        secret=settings.auth_secret,
        max_age=settings.session_max_age,
        update_age=settings.session_update_age,
        base_url=base_url,
        google=google,
        credentials=CredentialsProvider(settings.test_login_key),
    )


class TokenIssuer:
    """
    Issues and verifies HS256 session tokens.

    Tokens live for max_age seconds. Once a token is older than update_age it
    is reissued with a fresh lifetime, giving a sliding session.
    """

    def __init__(
        self,
        secret: str,
        max_age: int,
        update_age: int,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self.secret = secret
        self.max_age = max_age
        self.update_age = update_age
        self.clock = clock

    def issue(self, user: SessionUser) -> str:
        now = int(self.clock())
        claims = {
            "sub": user.id,
            "name": user.name,
            "email": user.email,
            "picture": user.image,
            "iat": now,
            "exp": now + self.max_age,
        }
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise AuthError("Invalid session token") from e
        # Checked here rather than by jose so the injected clock is honored.
        if int(claims.get("exp", 0)) <= int(self.clock()):
            raise AuthError("Session expired")
        if not claims.get("sub"):
            raise AuthError("Session token has no subject")
        return claims

    def needs_refresh(self, claims: dict) -> bool:
        return int(self.clock()) - int(claims.get("iat", 0)) >= self.update_age

    def refresh(self, claims: dict) -> str:
        return self.issue(user_from_claims(claims))


def user_from_claims(claims: dict) -> SessionUser:
    """Session callback: the token subject becomes the user id."""
    return SessionUser(
        id=claims["sub"],
        name=claims.get("name"),
        email=claims.get("email"),
        image=claims.get("picture"),
    )


def session_from_claims(claims: dict) -> dict:
    expires = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    user = user_from_claims(claims)
    return {
        "user": {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "image": user.image,
        },
        "expires": expires.isoformat(),
    }
