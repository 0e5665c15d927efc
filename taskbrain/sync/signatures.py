"""HMAC-SHA256 webhook signature verification."""

import hashlib
import hmac

from pydantic import SecretStr

from taskbrain.errors import ConfigurationError, WebhookVerificationError
from taskbrain.observability.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADERS = {
    "todoist": "X-Todoist-Hmac-SHA256",
    "linear": "Linear-Signature",
}

_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(
    provider: str,
    body: bytes,
    signature: str | None,
    secret: SecretStr | str | None,
) -> None:
    """Verify a provider webhook signature in constant time.

    There is no "unsigned" mode: a missing secret is a configuration error
    and a missing signature never verifies.

    Raises:
        ConfigurationError: If no secret is configured for the provider
        WebhookVerificationError: If the signature does not verify
    """
    if not secret:
        raise ConfigurationError(f"no webhook secret configured for {provider}")
    if not signature:
        logger.warning("webhook_signature_missing", provider=provider)
        raise WebhookVerificationError(provider)

    secret_value = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
    provided = signature.strip()
    if provided.lower().startswith(_PREFIX):
        provided = provided[len(_PREFIX):]

    expected = compute_signature(body, secret_value)
    if not hmac.compare_digest(expected.encode(), provided.lower().encode()):
        logger.warning("webhook_signature_invalid", provider=provider)
        raise WebhookVerificationError(provider)
