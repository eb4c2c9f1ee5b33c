"""Unit tests for the FCM wrapper."""
import pytest
from firebase_admin import exceptions, messaging

from pushrelay.services.push_sender import (
    NotificationPayload,
    PushConfig,
    PushNotConfiguredError,
    PushSenderService,
    _stringify_data,
    is_invalid_token_error,
)


def test_invalid_token_errors():
    assert is_invalid_token_error(messaging.UnregisteredError("gone"))
    assert is_invalid_token_error(exceptions.InvalidArgumentError("bad token"))
    assert not is_invalid_token_error(exceptions.UnavailableError("try later"))
    assert not is_invalid_token_error(messaging.QuotaExceededError("slow down"))
    assert not is_invalid_token_error(None)


def test_stringify_data():
    assert _stringify_data(None) == {}
    assert _stringify_data({"id": 7, "tags": ["a"], "name": "x", "on": True}) == {
        "id": "7",
        "tags": '["a"]',
        "name": "x",
        "on": "true",
    }


def test_configure_without_credentials_leaves_service_disabled():
    service = PushSenderService()
    service.configure(PushConfig())

    assert not service.is_configured


async def test_unconfigured_service_refuses_to_send():
    service = PushSenderService()

    with pytest.raises(PushNotConfiguredError):
        await service.send_to_topic("news", NotificationPayload(title="a", body="b"))


async def test_send_multicast_keeps_token_order(fcm):
    from pushrelay.services.push_sender import push_sender_service

    fcm.token_errors = {"b": messaging.UnregisteredError("gone")}

    results = await push_sender_service.send_multicast(
        ["a", "b", "c"], NotificationPayload(title="t", body="b")
    )

    assert [r.token for r in results] == ["a", "b", "c"]
    assert [r.success for r in results] == [True, False, True]
    assert isinstance(results[1].exception, messaging.UnregisteredError)


def test_configure_with_unreadable_credentials_disables_push(tmp_path):
    service = PushSenderService()
    service.configure(PushConfig(credentials_path=str(tmp_path / "missing-sa.json")))

    assert not service.is_configured


def test_configure_with_malformed_credentials_disables_push(tmp_path):
    key_file = tmp_path / "sa.json"
    key_file.write_text('{"type": "authorized_user"}')

    service = PushSenderService()
    service.configure(PushConfig(credentials_path=str(key_file)))

    assert not service.is_configured
