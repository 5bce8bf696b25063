"""Tracker session – authenticated, retrying HTTP access to the site."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

import httpx

from .config import ClientConfig, Credentials, SessionCookies, SiteConfig
from .errors import AuthenticationError, FetchError

logger = logging.getLogger("irrenhaus.session")

LOGIN_FAILED_MARKER = "Anmeldung Gescheitert!"
LOGIN_PATH = "/login.php"

Query = Mapping[str, Any] | list[tuple[str, Any]] | None


def _keep_lines(text: str, n: int = 3) -> str:
    if text.count("\n") < n:
        return text
    return "\n".join(text.split("\n")[:n]).replace("\r", "")


class Session:
    """One logged-in connection to the tracker.

    The cookie jar is shared by every request, including those issued from
    crawler worker threads.  Only `ensure_authenticated` / `login` modify it
    and they hold `_auth_lock` while doing so.
    """

    def __init__(
        self,
        site: SiteConfig | None = None,
        credentials: Credentials | None = None,
        cookies: SessionCookies | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.site = site or SiteConfig()
        self.credentials = credentials or Credentials()
        self._auth_lock = threading.Lock()
        self._throttle_lock = threading.Lock()
        self._last_request: float = 0.0
        self._client = httpx.Client(
            base_url=self.site.base_url,
            timeout=self.site.timeout,
            headers={"User-Agent": self.site.user_agent},
            follow_redirects=False,
            transport=transport,
        )
        if cookies is not None and cookies.present:
            self.set_cookies(cookies)

    @classmethod
    def from_config(cls, cfg: ClientConfig, **kwargs: Any) -> Session:
        return cls(cfg.site, cfg.credentials, cfg.cookies, **kwargs)

    # ── cookies ──────────────────────────────────────────────────

    def _cookie(self, name: str) -> str:
        # one name can be stored under several paths, any of them will do
        value = ""
        for cookie in self._client.cookies.jar:
            if cookie.name == name:
                value = cookie.value or ""
        return value

    @property
    def uid(self) -> int:
        try:
            return int(self._cookie("uid") or 0)
        except ValueError:
            return 0

    def get_cookies(self) -> SessionCookies:
        return SessionCookies(uid=self.uid, pass_=self._cookie("pass"), passhash=self._cookie("passhash"))

    def set_cookies(self, cookies: SessionCookies) -> None:
        domain = httpx.URL(self.site.base_url).host
        self._client.cookies.set("uid", str(cookies.uid), domain=domain)
        self._client.cookies.set("pass", cookies.pass_, domain=domain)
        if cookies.passhash:
            self._client.cookies.set("passhash", cookies.passhash, domain=domain)

    # ── rate limiting ────────────────────────────────────────────

    def _throttle(self) -> None:
        if self.site.request_delay <= 0:
            return
        with self._throttle_lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.site.request_delay:
                time.sleep(self.site.request_delay - elapsed)
            self._last_request = time.monotonic()

    # ── requests ─────────────────────────────────────────────────

    def _log_response(self, resp: httpx.Response) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        req = resp.request
        logger.debug("> %s %s -> %d", req.method, req.url, resp.status_code)
        for key, value in req.headers.items():
            logger.debug("    request  %s: %s", key, value)
        for key, value in resp.headers.items():
            logger.debug("    response %s: %s", key, value)
        if resp.headers.get("Content-Type") == "application/x-bittorrent":
            logger.debug("[body omitted]")
        else:
            logger.debug("[body truncated]\n%s", _keep_lines(resp.text))

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = "/" + path.lstrip("/")
        for attempt in range(1, self.site.max_retries + 1):
            self._throttle()
            try:
                resp = self._client.request(method, url, **kwargs)
                self._log_response(resp)
                if resp.status_code >= 500:
                    resp.raise_for_status()
                return resp
            except (httpx.HTTPStatusError, httpx.TransportError) as exc:
                logger.warning("Attempt %d/%d failed for %s: %s", attempt, self.site.max_retries, url, exc)
                if attempt == self.site.max_retries:
                    raise FetchError(url, exc) from exc
                time.sleep(2 ** attempt)
        raise FetchError(url, "no attempts made")

    def fetch(self, path: str, query: Query = None) -> httpx.Response:
        """GET a site path.  4xx responses are returned, callers decide what a 404 means."""
        return self._send("GET", path, params=query)

    def submit_form(
        self,
        path: str,
        query: Query = None,
        fields: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """POST a form (multipart when `files` is given)."""
        return self._send("POST", path, params=query, data=dict(fields or {}), files=files)

    # ── authentication ───────────────────────────────────────────

    def _is_logged_in(self) -> bool:
        resp = self.fetch("/my.php")
        location = resp.headers.get("Location")
        if resp.is_redirect and location:
            return not httpx.URL(location).path.startswith(LOGIN_PATH)
        return True

    def login(self) -> None:
        with self._auth_lock:
            self._login()

    def _login(self) -> None:
        logger.info("Logging in as %s", self.credentials.username or "<anonymous>")
        resp = self.submit_form(
            "takelogin.php",
            fields={
                "username": self.credentials.username,
                "password": self.credentials.password,
                "pin": self.credentials.pin,
            },
        )
        if LOGIN_FAILED_MARKER in resp.text:
            raise AuthenticationError("invalid credentials")
        if not self.uid:
            raise AuthenticationError("login response did not set a session cookie")
        logger.info("Logged in (uid=%d)", self.uid)

    def ensure_authenticated(self) -> None:
        """Log in if the site redirects the account page to the login form."""
        with self._auth_lock:
            if not self._is_logged_in():
                self._login()

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
