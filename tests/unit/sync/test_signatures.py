"""Tests for webhook signature verification."""

import pytest
from pydantic import SecretStr

from taskbrain.errors import ConfigurationError, WebhookVerificationError
from taskbrain.sync.signatures import compute_signature, verify_signature

BODY = b'{"event_name": "item:added"}'
SECRET = "s3cret"


class TestVerifySignature:
    def test_valid_signature(self) -> None:
        verify_signature("todoist", BODY, compute_signature(BODY, SECRET), SecretStr(SECRET))

    def test_prefix_and_case_are_tolerated(self) -> None:
        signature = "sha256=" + compute_signature(BODY, SECRET).upper()
        verify_signature("linear", BODY, signature, SECRET)

    def test_tampered_body(self) -> None:
        signature = compute_signature(BODY, SECRET)
        with pytest.raises(WebhookVerificationError) as exc_info:
            verify_signature("todoist", BODY + b" ", signature, SECRET)
        assert exc_info.value.status_code == 401
        assert exc_info.value.service == "todoist"

    def test_wrong_secret(self) -> None:
        with pytest.raises(WebhookVerificationError):
            verify_signature("todoist", BODY, compute_signature(BODY, "other"), SECRET)

    @pytest.mark.parametrize("signature", [None, "", "   "])
    def test_missing_signature(self, signature: str | None) -> None:
        with pytest.raises(WebhookVerificationError):
            verify_signature("todoist", BODY, signature, SECRET)

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_is_a_configuration_error(
        self, secret: SecretStr | str | None
    ) -> None:
        with pytest.raises(ConfigurationError, match="todoist"):
            verify_signature("todoist", BODY, compute_signature(BODY, ""), secret)
