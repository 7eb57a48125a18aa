import pytest
import requests
from unittest.mock import patch
from flask import Flask
from flask_jwt_extended import JWTManager, create_access_token
from votesync.authentication import rbac


@pytest.mark.parametrize("role,permission,expected", [
    ("voter", "vote", True),
    ("voter", "view_own_status", True),
    ("voter", "view_recapitulation", False),
    ("committee", "view_recapitulation", True),
    ("administrator", "vote", False),
    ("intruder", "vote", False),
    ("voter", "rig_election", False),
])
def test_local_role_table(role, permission, expected):
    assert rbac.RBACService().has_permission(role, permission) is expected


@pytest.mark.parametrize("opa_result", [True, False])
def test_opa_check_permission(opa_result):
    with patch("votesync.authentication.rbac.requests.post") as mock_post:
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {"result": opa_result}
        assert rbac.opa_check_permission("voter", "vote", "http://opa/v1/data/votesync/allow") is opa_result
        sent = mock_post.call_args.kwargs["json"]
        assert sent == {"input": {"role": "voter", "permission": "vote"}}


def test_opa_fails_closed_on_error():
    with patch("votesync.authentication.rbac.requests.post") as mock_post:
        mock_post.side_effect = requests.ConnectionError("opa down")
        assert rbac.opa_check_permission("voter", "vote", "http://opa") is False


def test_opa_fails_closed_on_bad_status():
    with patch("votesync.authentication.rbac.requests.post") as mock_post:
        mock_post.return_value.status_code = 500
        assert rbac.opa_check_permission("voter", "vote", "http://opa") is False


@pytest.fixture
def guarded_app():
    app = Flask(__name__)
    app.config['JWT_SECRET_KEY'] = "test-secret-key-with-enough-length!"
    app.config['OPA_URL'] = ''
    JWTManager(app)

    @app.route("/ballot")
    @rbac.require_permission(rbac.Permission.VOTE)
    def ballot():
        return "ok"

    @app.route("/recap")
    @rbac.require_permission(rbac.Permission.VIEW_RECAPITULATION)
    def recap():
        return "recap"

    return app


def _headers(app, role):
    with app.app_context():
        token = create_access_token(identity="x", additional_claims={"role": role})
    return {"Authorization": f"Bearer {token}"}


def test_require_permission_allows(guarded_app):
    with guarded_app.test_client() as client:
        resp = client.get("/ballot", headers=_headers(guarded_app, "voter"))
        assert resp.status_code == 200
        assert resp.data == b"ok"


def test_require_permission_denies(guarded_app):
    with guarded_app.test_client() as client:
        resp = client.get("/recap", headers=_headers(guarded_app, "voter"))
        assert resp.status_code == 403


def test_require_permission_uses_opa_when_configured(guarded_app, monkeypatch):
    guarded_app.config['OPA_URL'] = "http://opa"
    monkeypatch.setattr(rbac, "opa_check_permission", lambda role, perm, url: False)
    with guarded_app.test_client() as client:
        resp = client.get("/ballot", headers=_headers(guarded_app, "voter"))
        assert resp.status_code == 403
