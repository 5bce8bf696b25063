import time

import httpx
import pytest

from conftest import BASE_URL
from irrenhaus.config import Credentials, SessionCookies, SiteConfig
from irrenhaus.errors import AuthenticationError, FetchError
from irrenhaus.session import Session


def _logged_in(request):
    return "uid=" in request.headers.get("Cookie", "")


def _my_page(request):
    if _logged_in(request):
        return httpx.Response(200, text="<html>Mein Profil</html>")
    return httpx.Response(302, headers={"Location": f"{BASE_URL}/login.php?returnto=%2Fmy.php"})


@pytest.fixture
def anonymous(tracker):
    tracker.route("/my.php", _my_page)
    s = Session(
        SiteConfig(base_url=BASE_URL, max_retries=1),
        Credentials("user", "secret", "1234"),
        transport=httpx.MockTransport(tracker.handle),
    )
    yield s
    s.close()


def test_login_when_redirected_to_login_form(tracker, anonymous):
    tracker.route("/takelogin.php", lambda request: httpx.Response(
        302,
        headers=[
            ("Location", "/index.php"),
            ("Set-Cookie", "uid=42; path=/"),
            ("Set-Cookie", "pass=cafebabe; path=/"),
        ],
    ))

    anonymous.ensure_authenticated()

    [login] = tracker.calls("/takelogin.php")
    form = httpx.QueryParams(login.read().decode())
    assert (form["username"], form["password"], form["pin"]) == ("user", "secret", "1234")
    assert anonymous.uid == 42
    assert anonymous.get_cookies() == SessionCookies(uid=42, pass_="cafebabe")

    anonymous.ensure_authenticated()
    assert len(tracker.calls("/takelogin.php")) == 1


def test_login_rejected(tracker, anonymous):
    tracker.html("/takelogin.php", "<h2>Anmeldung Gescheitert!</h2>")
    with pytest.raises(AuthenticationError):
        anonymous.ensure_authenticated()


def test_login_without_session_cookie(tracker, anonymous):
    tracker.route("/takelogin.php", lambda request: httpx.Response(302, headers={"Location": "/index.php"}))
    with pytest.raises(AuthenticationError):
        anonymous.login()


def test_resumed_cookies_skip_login(tracker, session):
    session.ensure_authenticated()
    assert tracker.calls("/takelogin.php") == []
    assert session.uid == 42
    assert "pass=cafebabe" in tracker.calls("/my.php")[0].headers["Cookie"]


def test_redirect_elsewhere_counts_as_logged_in(tracker, session):
    tracker.route("/my.php", lambda request: httpx.Response(302, headers={"Location": "/index.php"}))
    session.ensure_authenticated()
    assert tracker.calls("/takelogin.php") == []


def test_client_errors_are_returned(session):
    assert session.fetch("/nope.php").status_code == 404


def test_server_errors_raise_after_retries(tracker, session):
    tracker.html("/browse.php", "", status=502)
    with pytest.raises(FetchError) as exc_info:
        session.fetch("/browse.php")
    assert exc_info.value.url == "/browse.php"


def test_transport_errors_are_retried(tracker, monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda seconds: None)
    attempts = []

    def flaky(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text="ok")

    tracker.route("/flaky.php", flaky)
    with Session(SiteConfig(base_url=BASE_URL, max_retries=3), transport=httpx.MockTransport(tracker.handle)) as s:
        assert s.fetch("flaky.php").text == "ok"
    assert len(attempts) == 2


def test_requests_are_throttled(tracker):
    tracker.html("/a.php", "ok")
    with Session(
        SiteConfig(base_url=BASE_URL, max_retries=1, request_delay=0.05),
        transport=httpx.MockTransport(tracker.handle),
    ) as s:
        start = time.monotonic()
        s.fetch("/a.php")
        s.fetch("/a.php")
        assert time.monotonic() - start >= 0.05


def test_set_cookies(session):
    session.set_cookies(SessionCookies(uid=7, pass_="beef", passhash="f00d"))
    assert session.get_cookies() == SessionCookies(uid=7, pass_="beef", passhash="f00d")
