from unittest.mock import patch


def sign_up(client, **body):
    payload = {"email": "new@example.com", "password": "secret-pass", "full_name": "New Person"}
    payload.update(body)
    return client.post("/api/v1/auth/sign-up", json=payload)


def test_sign_up_defaults_to_participant(client, store):
    r = sign_up(client)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["role"] == "participant"
    assert body["message"] == "Thanks for signing up! You can now sign in to access your dashboard."
    assert store.rows("users")[0]["full_name"] == "New Person"


def test_sign_up_maps_legacy_creator_role(client, store):
    r = sign_up(client, role="event_creator")
    assert r.json()["role"] == "event_manager"
    assert store.rows("users")[0]["role"] == "event_manager"


def test_sign_up_unknown_role_becomes_participant(client):
    assert sign_up(client, role="admin").json()["role"] == "participant"


def test_sign_up_duplicate_account(client):
    sign_up(client)
    r = sign_up(client)
    assert r.status_code == 400
    assert r.json()["detail"] == "An account with this email already exists. Please sign in instead."


def test_sign_up_requires_email_and_password(client):
    r = client.post("/api/v1/auth/sign-up", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Email and password are required"


def test_sign_in_sets_cookies_and_role_home(client, athlete, manager):
    r = client.post("/api/v1/auth/sign-in", json={"email": "athlete@example.com", "password": athlete.password})
    assert r.status_code == 200
    body = r.json()
    assert body["redirect_to"] == "/dashboard/athlete"
    assert body["role"] == "participant"
    cookies = r.headers.get_list("set-cookie")
    assert any(c.startswith(f"sb-access-token={body['access_token']}") for c in cookies)
    assert any(c.startswith("sb-refresh-token=") for c in cookies)

    r = client.post("/api/v1/auth/sign-in", json={"email": "manager@example.com", "password": manager.password})
    assert r.json()["redirect_to"] == "/dashboard"


def test_sign_in_without_profile_goes_to_default_home(client, identity, store):
    identity.sign_up("ghost@example.com", "pw-12345", {})
    store.reset()
    r = client.post("/api/v1/auth/sign-in", json={"email": "ghost@example.com", "password": "pw-12345"})
    assert r.status_code == 200
    assert r.json()["redirect_to"] == "/dashboard"
    assert r.json()["role"] is None


def test_sign_in_bad_password(client, athlete):
    r = client.post("/api/v1/auth/sign-in", json={"email": "athlete@example.com", "password": "nope"})
    assert r.status_code == 401


def test_signed_in_cookies_open_the_dashboard(client, athlete):
    client.post("/api/v1/auth/sign-in", json={"email": "athlete@example.com", "password": athlete.password})
    r = client.get("/dashboard/athlete", follow_redirects=False)
    assert r.status_code == 200


def test_sign_out_clears_cookies_and_revokes(client_for, identity, athlete):
    client = client_for(athlete)
    r = client.post("/api/v1/auth/sign-out")

    assert r.status_code == 200
    assert r.json()["redirect_to"] == "/"
    cleared = [c for c in r.headers.get_list("set-cookie") if "Max-Age=0" in c]
    assert len(cleared) == 2
    assert client_for(athlete).get("/dashboard/profile", follow_redirects=False).status_code == 307


def test_forgot_password(client, identity, athlete):
    r = client.post("/api/v1/auth/forgot-password", json={"email": "athlete@example.com"})
    assert r.status_code == 200
    assert r.json()["message"] == "Check your email for a link to reset your password."
    assert identity.sent_resets == [{
        "email": "athlete@example.com",
        "redirect_to": "http://localhost:3000/auth/callback?redirect_to=/dashboard/reset-password",
    }]

    r = client.post("/api/v1/auth/forgot-password", json={"email": "athlete@example.com", "callback_url": "/thanks"})
    assert r.json()["redirect_to"] == "/thanks"


def test_forgot_password_errors(client, identity):
    r = client.post("/api/v1/auth/forgot-password", json={})
    assert r.json()["detail"] == "Email is required"

    with patch.object(identity, "send_password_reset", side_effect=ConnectionError("smtp down")):
        r = client.post("/api/v1/auth/forgot-password", json={"email": "a@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Could not reset password"


def test_reset_password(client, identity, athlete):
    url = "/api/v1/auth/reset-password"
    headers = athlete.auth_header

    r = client.post(url, json={"password": "x"}, headers=headers)
    assert r.json()["detail"] == "Password and confirm password are required"

    r = client.post(url, json={"password": "one", "confirm_password": "two"}, headers=headers)
    assert r.json()["detail"] == "Passwords do not match"

    r = client.post(url, json={"password": "new-pass", "confirm_password": "new-pass"})
    assert r.status_code == 401

    r = client.post(url, json={"password": "new-pass", "confirm_password": "new-pass"},
                    headers={"Authorization": "Bearer bogus"})
    assert r.json()["detail"] == "Password update failed"

    r = client.post(url, json={"password": "new-pass", "confirm_password": "new-pass"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Password updated"
    assert identity.sign_in("athlete@example.com", "new-pass").user.id == athlete.id


def test_me(client, manager):
    assert client.get("/api/v1/auth/me").status_code == 401
    body = client.get("/api/v1/auth/me", headers=manager.auth_header).json()
    assert body == {
        "id": manager.id,
        "email": "manager@example.com",
        "full_name": "Morgan Manager",
        "role": "event_manager",
    }
