# donut/services/session.py
"""OAuth session: sign-in through the browser, token refresh, sign-out.

Tokens live in a ``TokenStore``; the in-memory ``Session`` mirrors it. Expiry is
not persisted, so a restored session is refreshed before first use.
"""
from __future__ import annotations

import datetime as dt
import functools
import logging
import os
import secrets
import threading
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from donut.core.errors import AuthenticationError, NetworkError
from donut.infra.callback_server import CallbackServer
from donut.infra.google_http import BearerHttp
from donut.infra.settings import (API_TIMEOUT, CAL_SCOPES, CALLBACK_PATH,
                                  LOCAL_PORT, REFRESH_MARGIN, SIGN_IN_TIMEOUT)
from donut.infra.token_store import TokenKey, TokenStore

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _aware(expiry: Optional[dt.datetime], fallback: dt.datetime) -> dt.datetime:
    # google-auth reports expiry as naive UTC
    if expiry is None:
        return fallback
    if expiry.tzinfo is None:
        return expiry.replace(tzinfo=dt.timezone.utc)
    return expiry


@dataclass
class Session:
    access_token: str
    refresh_token: Optional[str]
    expiry: dt.datetime
    email: Optional[str] = None

    def needs_refresh(self, now: dt.datetime, margin: dt.timedelta = REFRESH_MARGIN) -> bool:
        return self.expiry - now <= margin


def default_flow_factory(client_config: dict, redirect_uri: str) -> Flow:
    # Google may grant the scopes back in a different set (e.g. adds "openid")
    os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
    return Flow.from_client_config(client_config, scopes=CAL_SCOPES, redirect_uri=redirect_uri)


def fetch_user_email(creds: Credentials) -> Optional[str]:
    """Look up the signed-in account's email with the OAuth2 v2 userinfo API."""
    service = build("oauth2", "v2", http=BearerHttp(creds.token), cache_discovery=False)
    info = service.userinfo().get().execute()
    return info.get("email")


class SessionManager:
    def __init__(
        self,
        store: TokenStore,
        client_config: dict,
        *,
        flow_factory: Callable[[dict, str], Flow] = default_flow_factory,
        transport=None,
        open_browser: Callable[[str], object] = webbrowser.open,
        clock: Callable[[], dt.datetime] = utcnow,
        profile_fetcher: Callable[[Credentials], Optional[str]] = fetch_user_email,
        callback_timeout: float = SIGN_IN_TIMEOUT,
        port: int = LOCAL_PORT,
    ):
        self.store = store
        self.client_config = client_config
        self.flow_factory = flow_factory
        self.transport = transport or functools.partial(Request(), timeout=API_TIMEOUT)
        self.open_browser = open_browser
        self.clock = clock
        self.profile_fetcher = profile_fetcher
        self.callback_timeout = callback_timeout
        self.port = port

        self._session: Optional[Session] = None
        self._sign_in_lock = threading.Lock()

    # ---- state ----
    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    @property
    def is_signed_in(self) -> bool:
        return self._session is not None

    @property
    def _client(self) -> dict:
        return self.client_config.get("installed") or self.client_config.get("web") or {}

    def _clear(self) -> None:
        self._session = None
        self.store.delete_all()

    # ---- restore ----
    def restore_session(self) -> Optional[Session]:
        """Load stored tokens and validate them with a refresh.

        A rejected refresh wipes the stored tokens and returns None. A network
        failure keeps them, so the next refresh attempt can still succeed.
        """
        access_token = self.store.retrieve(TokenKey.ACCESS_TOKEN)
        refresh_token = self.store.retrieve(TokenKey.REFRESH_TOKEN)
        if not access_token or not refresh_token:
            logger.debug("No stored session")
            return None

        self._session = Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry=self.clock(),
            email=self.store.retrieve(TokenKey.USER_EMAIL),
        )
        try:
            self.refresh_access_token_if_needed()
        except AuthenticationError as e:
            logger.info("Stored session rejected, signing out: %s", e)
            self._clear()
            return None
        except NetworkError as e:
            logger.warning("Could not validate stored session (%s); keeping tokens", e)
        return self._session

    # ---- sign in ----
    def sign_in(self) -> Session:
        if not self._sign_in_lock.acquire(blocking=False):
            raise AuthenticationError("Sign-in already in progress.")
        try:
            return self._sign_in()
        finally:
            self._sign_in_lock.release()

    def _sign_in(self) -> Session:
        state = secrets.token_urlsafe(24)
        try:
            server = CallbackServer(port=self.port, path=CALLBACK_PATH, expected_state=state)
        except OSError as e:
            raise NetworkError(f"Could not listen for the OAuth callback on port {self.port}: {e}") from e

        with server:
            redirect_uri = f"http://localhost:{server.port}{CALLBACK_PATH}"
            flow = self.flow_factory(self.client_config, redirect_uri)
            auth_url, _ = flow.authorization_url(
                access_type="offline",
                prompt="consent",
                state=state,
            )
            logger.info("Opening Google sign-in in the browser")
            self.open_browser(auth_url)
            code = server.wait(self.callback_timeout)

        creds = self._exchange_code(flow, code)
        if not creds.token:
            raise AuthenticationError("Token exchange returned no access token.")

        session = Session(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=_aware(creds.expiry, self.clock()),
        )
        self.store.save(TokenKey.ACCESS_TOKEN, session.access_token)
        if session.refresh_token:
            self.store.save(TokenKey.REFRESH_TOKEN, session.refresh_token)
        self._session = session

        try:
            session.email = self.profile_fetcher(creds)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Could not fetch profile email: %s", e)
        if session.email:
            self.store.save(TokenKey.USER_EMAIL, session.email)
        else:
            self.store.delete(TokenKey.USER_EMAIL)

        logger.info("Signed in%s", f" as {session.email}" if session.email else "")
        return session

    def _exchange_code(self, flow: Flow, code: str) -> Credentials:
        try:
            flow.fetch_token(code=code)
        except OAuth2Error as e:
            raise AuthenticationError(f"Authorization code was rejected: {e.description or e.error}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Token exchange failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Malformed token response: {e}") from e
        return flow.credentials

    # ---- refresh ----
    def refresh_access_token_if_needed(self) -> Session:
        session = self._session
        if session is None:
            raise AuthenticationError()
        if not session.needs_refresh(self.clock()):
            return session
        if not session.refresh_token:
            raise AuthenticationError("No refresh token available; please sign in again.")

        creds = Credentials(
            token=session.access_token,
            refresh_token=session.refresh_token,
            token_uri=self._client.get("token_uri", GOOGLE_TOKEN_URI),
            client_id=self._client.get("client_id"),
            client_secret=self._client.get("client_secret"),
        )
        try:
            creds.refresh(self.transport)
        except google_auth_exceptions.RefreshError as e:
            raise AuthenticationError(f"Token refresh was rejected: {e}") from e
        except google_auth_exceptions.TransportError as e:
            raise NetworkError(f"Token refresh failed: {e}") from e

        session.access_token = creds.token
        session.expiry = _aware(creds.expiry, self.clock())
        self.store.save(TokenKey.ACCESS_TOKEN, session.access_token)
        if creds.refresh_token and creds.refresh_token != session.refresh_token:
            session.refresh_token = creds.refresh_token
            self.store.save(TokenKey.REFRESH_TOKEN, session.refresh_token)
        logger.debug("Access token refreshed, expires %s", session.expiry.isoformat())
        return session

    def valid_access_token(self) -> str:
        return self.refresh_access_token_if_needed().access_token

    # ---- sign out ----
    def sign_out(self) -> None:
        self._clear()
        logger.info("Signed out")
