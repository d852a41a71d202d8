from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from campusknot.utils.verification import (
    PendingVerification,
    RedisVerificationCodeStore,
    VerificationCodeStore,
    create_code_store,
)


def test_issue_replaces_previous_code():
    store = VerificationCodeStore(ttl_seconds=600)
    first = store.issue("a@nitk.edu.in")
    first.verified = True
    store.save("a@nitk.edu.in", first)

    second = store.issue("a@nitk.edu.in")

    assert store.get("a@nitk.edu.in") == second
    assert not store.get("a@nitk.edu.in").verified


def test_pending_verification_expiry():
    now = datetime.now(timezone.utc)
    record = PendingVerification(code="123456", expires_at=now + timedelta(seconds=5))
    assert not record.is_expired(now)
    assert record.is_expired(now + timedelta(seconds=6))


def test_purge_expired():
    store = VerificationCodeStore(ttl_seconds=600)
    store.issue("fresh@nitk.edu.in")
    store.save(
        "stale@nitk.edu.in",
        PendingVerification(code="111111", expires_at=datetime.now(timezone.utc) - timedelta(seconds=1)),
    )

    assert store.purge_expired() == 1
    assert store.get("stale@nitk.edu.in") is None
    assert store.get("fresh@nitk.edu.in") is not None


def test_discard_missing_email_is_noop():
    store = VerificationCodeStore(ttl_seconds=600)
    store.discard("nobody@nitk.edu.in")
    assert store.get("nobody@nitk.edu.in") is None


@patch("campusknot.utils.verification.RedisClient")
def test_create_code_store_without_redis(mock_redis_client):
    mock_redis_client.get_client.return_value = None
    store = create_code_store(600)
    assert type(store) is VerificationCodeStore


@patch("campusknot.utils.verification.RedisClient")
def test_create_code_store_with_redis(mock_redis_client):
    mock_redis_client.get_client.return_value = MagicMock()
    store = create_code_store(600)
    assert isinstance(store, RedisVerificationCodeStore)


@patch("campusknot.utils.verification.store_model")
def test_redis_store_save_uses_prefixed_key(mock_store_model):
    store = RedisVerificationCodeStore(ttl_seconds=600)
    store.issue("a@nitk.edu.in")

    mock_store_model.assert_called_once()
    key, record, ttl = mock_store_model.call_args.args
    assert key == "verification:a@nitk.edu.in"
    assert isinstance(record, PendingVerification)
    assert 600 <= ttl <= 660


@patch("campusknot.utils.verification.load_model")
def test_redis_store_get(mock_load_model):
    record = PendingVerification(code="222222", expires_at=datetime.now(timezone.utc))
    mock_load_model.return_value = record

    store = RedisVerificationCodeStore(ttl_seconds=600)

    assert store.get("a@nitk.edu.in") == record
    mock_load_model.assert_called_once_with("verification:a@nitk.edu.in", PendingVerification)
    assert store.purge_expired() == 0


@patch("campusknot.utils.verification.evict")
def test_redis_store_discard(mock_evict):
    RedisVerificationCodeStore(ttl_seconds=600).discard("a@nitk.edu.in")
    mock_evict.assert_called_once_with("verification:a@nitk.edu.in")
