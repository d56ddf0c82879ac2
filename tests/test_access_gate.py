import asyncio
from unittest.mock import Mock

from app.core.access_gate import AccessGate
from app.core.identity import CookieJar, SessionResolution, SessionUser
from app.modules.users.schemas import Role

USER = SessionUser(id="u1", email="u1@example.com")


def make_gate(resolve, role=Role.PARTICIPANT):
    identity = Mock()
    identity.resolve_session.side_effect = resolve
    users = Mock()
    if isinstance(role, Exception):
        users.get_role.side_effect = role
    else:
        users.get_role.return_value = role
    return AccessGate(identity, users, CookieJar), users


def resolved(user=None, error=None, rotate=False):
    def _resolve(access_token, refresh_token, jar):
        if rotate:
            jar.set_session("new-access", "new-refresh")
        return SessionResolution(user=user, error=error)
    return _resolve


def decide(gate, path, cookies=None):
    return asyncio.run(gate.decide(path, cookies or {"sb-access-token": "a", "sb-refresh-token": "r"}))


def test_resolution_failure_fails_open_and_keeps_cookies():
    def _resolve(access_token, refresh_token, jar):
        jar.set_session("half", "rotated")
        raise ConnectionError("identity provider unreachable")

    gate, _ = make_gate(_resolve)
    decision = decide(gate, "/dashboard")

    assert decision.proceed
    assert [m.value for m in decision.cookies] == ["half", "rotated"]


def test_protected_path_without_session_redirects_to_landing():
    gate, _ = make_gate(resolved())
    decision = decide(gate, "/dashboard/athlete", cookies={})
    assert decision.redirect_to == "/"


def test_protected_path_with_resolution_error_redirects():
    gate, _ = make_gate(resolved(user=USER, error="JWT expired"))
    assert decide(gate, "/dashboard").redirect_to == "/"


def test_landing_with_session_goes_to_role_home():
    gate, users = make_gate(resolved(user=USER), role=Role.PARTICIPANT)
    assert decide(gate, "/").redirect_to == "/dashboard/athlete"
    users.get_role.assert_called_once_with("u1")

    gate, _ = make_gate(resolved(user=USER), role=Role.EVENT_MANAGER)
    assert decide(gate, "/").redirect_to == "/dashboard"


def test_landing_role_lookup_failure_uses_default_home():
    gate, _ = make_gate(resolved(user=USER), role=LookupError("no profile"))
    assert decide(gate, "/").redirect_to == "/dashboard"


def test_landing_without_session_proceeds():
    gate, users = make_gate(resolved())
    assert decide(gate, "/", cookies={}).proceed
    users.get_role.assert_not_called()


def test_other_pages_proceed_with_or_without_session():
    gate, _ = make_gate(resolved(user=USER))
    assert decide(gate, "/competitions").proceed
    assert decide(gate, "/dashboard/profile").proceed

    gate, _ = make_gate(resolved())
    assert decide(gate, "/competition/c1", cookies={}).proceed


def test_rotated_cookies_carried_on_every_branch():
    for path, user in (("/", USER), ("/dashboard", None), ("/competitions", USER)):
        gate, _ = make_gate(resolved(user=user, rotate=True))
        decision = decide(gate, path)
        assert [m.name for m in decision.cookies] == ["sb-access-token", "sb-refresh-token"], path


def test_resolution_is_attached_to_decision():
    gate, _ = make_gate(resolved(user=USER))
    decision = decide(gate, "/competitions")
    assert decision.resolution.user == USER


# -- through the middleware ------------------------------------------------


def test_middleware_redirects_anonymous_dashboard(client):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == "http://testserver/"
    assert r.headers["X-Frame-Options"] == "DENY"


def test_middleware_drops_query_on_redirect(client):
    r = client.get("/dashboard/athlete?sport=Tennis", follow_redirects=False)
    assert r.headers["location"] == "http://testserver/"


def test_middleware_sends_signed_in_landing_to_role_home(client_for, manager, athlete):
    r = client_for(manager).get("/", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == "http://testserver/dashboard"

    r = client_for(athlete).get("/", follow_redirects=False)
    assert r.headers["location"] == "http://testserver/dashboard/athlete"


def test_middleware_skips_api_routes(client):
    r = client.get("/api/v1/competitions", follow_redirects=False)
    assert r.status_code == 200


def test_middleware_propagates_rotated_cookies(client_for, athlete, clock):
    clock.advance(3601)
    r = client_for(athlete).get("/dashboard/profile", follow_redirects=False)

    assert r.status_code == 200
    set_cookies = r.headers.get_list("set-cookie")
    assert any(c.startswith("sb-access-token=") for c in set_cookies)
    assert any(c.startswith("sb-refresh-token=") for c in set_cookies)
    assert r.json()["full_name"] == "Alex Athlete"


def test_middleware_redirect_after_rotation_still_sets_cookies(client_for, manager, clock):
    clock.advance(3601)
    r = client_for(manager).get("/", follow_redirects=False)

    assert r.headers["location"] == "http://testserver/dashboard"
    assert any(c.startswith("sb-access-token=") for c in r.headers.get_list("set-cookie"))


def test_middleware_fails_open_when_provider_is_down(client_for, athlete, identity, monkeypatch):
    def _down(*args, **kwargs):
        raise ConnectionError("provider unreachable")

    monkeypatch.setattr(identity, "resolve_session", _down)
    r = client_for(athlete).get("/competitions", follow_redirects=False)
    assert r.status_code == 200
    assert r.json()["user"] is None
