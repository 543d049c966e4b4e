import json
from unittest.mock import MagicMock, patch

from phoneauth.identity.models import AuthenticationResponse, User
from phoneauth.session.bridge import RedisSessionBridge
from phoneauth.store.models import AuthSession
from phoneauth.store.session_repo import load_auth_session


def _response(org=None):
    return AuthenticationResponse(
        user=User(id="user_1", email="+15551234567@sms.example"),
        organizationId=org,
        accessToken="at",
        refreshToken="rt",
        authenticationMethod="MagicAuth",
    )


@patch("phoneauth.session.bridge.log")
@patch("phoneauth.store.session_repo.get_redis")
def test_persist_stores_session_with_ttl(mock_get_redis, mock_log):
    mock_redis = MagicMock()
    mock_get_redis.return_value = mock_redis

    session_id = RedisSessionBridge(ttl_sec=600).persist(_response(org="org_1"))

    assert session_id
    key, raw = mock_redis.set.call_args.args
    assert key == f"auth_session:{session_id}"
    assert mock_redis.set.call_args.kwargs["ex"] == 600
    data = json.loads(raw)
    assert data["userId"] == "user_1"
    assert data["organizationId"] == "org_1"
    assert data["accessToken"] == "at"
    # Tokens never reach the log line
    logged = mock_log.call_args.kwargs
    assert "accessToken" not in logged and "refreshToken" not in logged


@patch("phoneauth.session.bridge.log")
@patch("phoneauth.store.session_repo.get_redis")
def test_persist_issues_distinct_ids(mock_get_redis, mock_log):
    mock_get_redis.return_value = MagicMock()
    bridge = RedisSessionBridge(ttl_sec=600)
    assert bridge.persist(_response()) != bridge.persist(_response())


@patch("phoneauth.session.bridge.log")
@patch("phoneauth.store.session_repo.get_redis")
def test_terminate_deletes_session(mock_get_redis, mock_log):
    mock_redis = MagicMock()
    mock_redis.get.return_value = json.dumps({"sessionId": "abc", "userId": "user_1"})
    mock_redis.delete.return_value = 1
    mock_get_redis.return_value = mock_redis

    assert RedisSessionBridge(ttl_sec=600).terminate("abc") is True
    mock_redis.delete.assert_called_once_with("auth_session:abc")
    assert mock_log.call_args.kwargs["userId"] == "user_1"


@patch("phoneauth.session.bridge.log")
@patch("phoneauth.store.session_repo.get_redis")
def test_terminate_unknown_session(mock_get_redis, mock_log):
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    mock_redis.delete.return_value = 0
    mock_get_redis.return_value = mock_redis

    assert RedisSessionBridge(ttl_sec=600).terminate("gone") is False
    assert mock_log.call_args.kwargs["userId"] is None


@patch("phoneauth.store.session_repo.get_redis")
def test_load_ignores_unknown_fields(mock_get_redis):
    mock_redis = MagicMock()
    mock_redis.get.return_value = json.dumps({"sessionId": "abc", "userId": "user_1", "legacyField": 1})
    mock_get_redis.return_value = mock_redis

    s = load_auth_session("abc")

    assert isinstance(s, AuthSession)
    assert s.userId == "user_1"


@patch("phoneauth.store.session_repo.get_redis")
def test_load_missing_session(mock_get_redis):
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    mock_get_redis.return_value = mock_redis
    assert load_auth_session("nope") is None
