"""
Authentication, session and user-management tests.

Verifies:
- Self-registration creates a Medical Rep and can be disabled
- Login success/failure (failures recorded as LOGIN_FAILED)
- Logout revokes the token
- Role changes revoke the user's sessions
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token
from pharmstock import create_app
from pharmstock.extensions import db
from pharmstock.models import SecurityEvent, SessionToken
from pharmstock.permissions import Role
from pharmstock.services import auth_service, session_service
from pharmstock.time_utils import utcnow


def test_register_creates_medical_rep(client):
    resp = client.post("/api/auth/register", json={
        "username": "newrep",
        "password": PASSWORD,
        "full_name": "New Rep",
        "role": "Admin",  # ignored
    })
    assert resp.status_code == 201
    assert resp.json["user"]["role"] == Role.MEDICAL_REP
    assert "password_hash" not in resp.json["user"]
    assert resp.json["token"]

    me = client.get("/api/auth/me", headers=auth_headers(resp.json["token"]))
    assert me.status_code == 200
    assert me.json["user"]["username"] == "newrep"
    assert sorted(me.json["operations"]) == ["list_allocations", "view_stock"]


def test_register_rejects_weak_password_and_duplicates(client, users):
    weak = client.post("/api/auth/register", json={
        "username": "weak", "password": "password", "full_name": "Weak",
    })
    assert weak.status_code == 400

    dup = client.post("/api/auth/register", json={
        "username": "admin", "password": PASSWORD, "full_name": "Again",
    })
    assert dup.status_code == 409


def test_register_can_be_disabled():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'ALLOW_SELF_REGISTRATION': False,
    })
    with app.app_context():
        db.create_all()
        resp = app.test_client().post("/api/auth/register", json={
            "username": "x", "password": PASSWORD, "full_name": "X",
        })
        assert resp.status_code == 403
        db.session.remove()
        db.drop_all()


def test_login_failure_is_recorded(client, users):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "Wrong123!"})
    assert resp.status_code == 401
    assert resp.json["error"] == "unauthenticated"

    events = db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").all()
    assert len(events) == 1
    assert events[0].user_id is None


def test_login_requires_credentials(client):
    assert client.post("/api/auth/login", json={"username": "admin"}).status_code == 400
    assert client.post("/api/auth/login", data="not json").status_code == 400


def test_logout_revokes_token(client, users):
    token = get_auth_token(client, "admin", PASSWORD)
    headers = auth_headers(token)

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_inactive_user_cannot_use_session(client, users):
    token = get_auth_token(client, "rep", PASSWORD)
    rep = users[Role.MEDICAL_REP]
    rep.is_active = False
    db.session.commit()

    assert client.get("/api/stock", headers=auth_headers(token)).status_code == 401
    assert get_auth_token(client, "rep", PASSWORD) is None


def test_idle_session_expires(app, users):
    session, token = session_service.create_session(users[Role.ADMIN].id)
    session.last_used_at = utcnow() - timedelta(hours=3)
    db.session.commit()

    assert session_service.validate_session(token) is None
    assert db.session.get(SessionToken, session.id).revoked_reason == "Idle timeout"


def test_admin_creates_user_with_role(client, headers_for):
    resp = client.post("/api/users", json={
        "username": "sm2",
        "password": PASSWORD,
        "full_name": "Second Stock Manager",
        "role": Role.STOCK_MANAGER,
        "department": "Warehouse",
    }, headers=headers_for(Role.ADMIN))
    assert resp.status_code == 201
    assert resp.json["role"] == Role.STOCK_MANAGER
    assert resp.json["department"] == "Warehouse"


def test_admin_rejects_unknown_role(client, headers_for):
    resp = client.post("/api/users", json={
        "username": "x1", "password": PASSWORD, "full_name": "X", "role": "Pharmacist",
    }, headers=headers_for(Role.CEO))
    assert resp.status_code == 400


def test_role_change_revokes_sessions(client, headers_for, users):
    rep = users[Role.MEDICAL_REP]
    rep_headers = headers_for(Role.MEDICAL_REP)

    resp = client.patch(
        f"/api/users/{rep.id}",
        json={"role": Role.MARKETER, "department": "North"},
        headers=headers_for(Role.ADMIN),
    )
    assert resp.status_code == 200
    assert resp.json["role"] == Role.MARKETER
    assert resp.json["department"] == "North"

    assert client.get("/api/auth/me", headers=rep_headers).status_code == 401
    events = db.session.query(SecurityEvent).filter_by(event_type="ROLE_CHANGED").all()
    assert len(events) == 1


def test_department_only_change_keeps_sessions(client, headers_for, users):
    rep = users[Role.MEDICAL_REP]
    rep_headers = headers_for(Role.MEDICAL_REP)

    resp = client.patch(f"/api/users/{rep.id}", json={"department": None}, headers=headers_for(Role.CEO))
    assert resp.status_code == 200
    assert resp.json["department"] is None
    assert client.get("/api/auth/me", headers=rep_headers).status_code == 200


@pytest.mark.parametrize("body", [{"username": "hijack"}, {"role": "Pharmacist"}])
def test_update_user_rejects_bad_fields(client, headers_for, users, body):
    rep = users[Role.MEDICAL_REP]
    resp = client.patch(f"/api/users/{rep.id}", json=body, headers=headers_for(Role.ADMIN))
    assert resp.status_code == 400


def test_list_users_by_role(client, headers_for, users, make_user):
    make_user("rep_two")
    resp = client.get("/api/users/role/Medical%20Rep", headers=headers_for(Role.MARKETER))
    assert resp.status_code == 200
    assert sorted(u["username"] for u in resp.json) == ["rep", "rep_two"]

    assert client.get("/api/users/role/Nobody", headers=headers_for(Role.MARKETER)).status_code == 400


def test_password_is_hashed(users):
    admin = auth_service.get_user(users[Role.ADMIN].id)
    assert admin.password_hash != PASSWORD
    assert auth_service.verify_password(PASSWORD, admin.password_hash)
    assert not auth_service.verify_password("nope", admin.password_hash)


@pytest.mark.parametrize("department", [5, ["North"], {"name": "North"}])
def test_update_user_rejects_non_string_department(client, headers_for, users, department):
    rep = users[Role.MEDICAL_REP]
    resp = client.patch(
        f"/api/users/{rep.id}",
        json={"role": Role.MARKETER, "department": department},
        headers=headers_for(Role.ADMIN),
    )
    assert resp.status_code == 400
    assert resp.json["error"] == "invalid_input"

    db.session.expire_all()
    unchanged = auth_service.get_user(rep.id)
    assert unchanged.role == Role.MEDICAL_REP


def test_blank_department_clears_it(users):
    rep = users[Role.MEDICAL_REP]
    auth_service.update_user(user_id=rep.id, department="South")
    updated = auth_service.update_user(user_id=rep.id, department="   ")
    assert updated.department is None
