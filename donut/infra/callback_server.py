# donut/infra/callback_server.py
from __future__ import annotations

import logging
import threading
import wsgiref.simple_server
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Optional
from urllib.parse import parse_qs

from donut.core.errors import AuthenticationError

from .settings import CALLBACK_PATH, LOCAL_PORT

logger = logging.getLogger(__name__)

SUCCESS_PAGE = """<html>
<head><meta charset="UTF-8"><title>donut - Signed in</title></head>
<body style="font-family: sans-serif; text-align: center; padding: 50px;">
<h1>✅ Signed in</h1>
<p>You can close this window and return to the terminal.</p>
<script>setTimeout(() => window.close(), 3000);</script>
</body>
</html>
"""

FAILURE_PAGE = """<html>
<head><meta charset="UTF-8"><title>donut - Sign-in failed</title></head>
<body style="font-family: sans-serif; text-align: center; padding: 50px;">
<h1>❌ Sign-in failed</h1>
<p>No authorization code was received. Please try again.</p>
</body>
</html>
"""


class _QuietHandler(wsgiref.simple_server.WSGIRequestHandler):
    def log_message(self, format, *args):  # pylint: disable=redefined-builtin
        logger.debug("callback: " + format, *args)


class CallbackServer:
    """One-shot local listener for the OAuth redirect.

    The first request settles ``result``: a request to the callback path whose
    query carries ``code`` (and the expected ``state``) yields the code; anything
    else fails the attempt. Later requests only get the failure page.
    """

    def __init__(self, port: int = LOCAL_PORT, path: str = CALLBACK_PATH,
                 expected_state: Optional[str] = None, host: str = "localhost"):
        self.path = path
        self.expected_state = expected_state
        self.result: Future = Future()
        self._server = wsgiref.simple_server.make_server(
            host, port, self._app, handler_class=_QuietHandler
        )
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def port(self) -> int:
        return self._server.server_port

    def _extract_code(self, environ) -> Optional[str]:
        if environ.get("REQUEST_METHOD", "GET") != "GET":
            return None
        if environ.get("PATH_INFO", "") != self.path:
            return None
        query = parse_qs(environ.get("QUERY_STRING", ""))
        code = (query.get("code") or [None])[0]
        if not code:
            return None
        if self.expected_state is not None:
            state = (query.get("state") or [None])[0]
            if state != self.expected_state:
                logger.warning("OAuth callback state mismatch")
                return None
        return code

    def _app(self, environ, start_response):
        code = self._extract_code(environ)
        settled = not self.result.done()
        if code and settled:
            status, page = "200 OK", SUCCESS_PAGE
            self.result.set_result(code)
            logger.debug("Authorization code received")
        else:
            status, page = "400 Bad Request", FAILURE_PAGE
            if settled:
                self.result.set_exception(
                    AuthenticationError("Authentication failed: no authorization code was received.")
                )
                logger.debug("Callback without authorization code")
        start_response(status, [("Content-Type", "text/html; charset=utf-8")])
        return [page.encode("utf-8")]

    def start(self) -> "CallbackServer":
        self._thread = threading.Thread(target=self._server.serve_forever, name="donut-oauth-callback", daemon=True)
        self._thread.start()
        logger.debug("Callback server listening on port %d", self.port)
        return self

    def wait(self, timeout: float) -> str:
        """Block until the callback settles or ``timeout`` seconds pass."""
        try:
            return self.result.result(timeout=timeout)
        except FutureTimeout as e:
            raise AuthenticationError("Sign-in timed out waiting for the browser callback.") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join(timeout=5)
        self._server.server_close()
        logger.debug("Callback server stopped")

    def __enter__(self) -> "CallbackServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
