import pytest
import requests

from form_relay.adapters.recaptcha_client import RecaptchaClient
from form_relay.errors import SpamCheckFailed
from form_relay.services.spam_filter import SpamFilter


class StubRecaptchaClient(RecaptchaClient):
    def __init__(self, payload=None, error=None) -> None:
        super().__init__(secret_key="stub-secret")
        self.payload = payload or {}
        self.error = error
        self.tokens = []

    def siteverify(self, token):
        self.tokens.append(token)
        if self.error:
            raise self.error
        return self.payload


def test_successful_verification_passes():
    client = StubRecaptchaClient({"success": True, "score": 0.9, "action": "submit"})
    result = SpamFilter(client, min_score=0.5, expected_action="submit").verify("token-1")

    assert result.success is True
    assert result.score == 0.9
    assert client.tokens == ["token-1"]


def test_rejected_token_raises():
    client = StubRecaptchaClient({"success": False, "error-codes": ["invalid-input-response"]})
    with pytest.raises(SpamCheckFailed) as excinfo:
        SpamFilter(client).verify("bad-token")
    assert excinfo.value.message.startswith("reCAPTCHA validation failed")


def test_missing_token_is_forwarded_as_empty():
    client = StubRecaptchaClient({"success": False, "error-codes": ["missing-input-response"]})
    with pytest.raises(SpamCheckFailed):
        SpamFilter(client).verify(None)
    assert client.tokens == [""]


def test_low_score_raises_when_threshold_configured():
    client = StubRecaptchaClient({"success": True, "score": 0.1})
    with pytest.raises(SpamCheckFailed):
        SpamFilter(client, min_score=0.5).verify("token")


def test_unexpected_action_raises():
    client = StubRecaptchaClient({"success": True, "score": 0.9, "action": "login"})
    with pytest.raises(SpamCheckFailed):
        SpamFilter(client, expected_action="submit").verify("token")


def test_transport_failure_raises_spam_check_failed():
    client = StubRecaptchaClient(error=requests.ConnectionError("unreachable"))
    with pytest.raises(SpamCheckFailed):
        SpamFilter(client).verify("token")
