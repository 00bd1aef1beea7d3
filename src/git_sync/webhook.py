"""Webhook authentication for inbound triggers."""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from git_sync.config import WebhookConfig, WebhookKind

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a webhook check."""

    ok: bool
    reason: str = ""
    header: str = ""


@dataclass(frozen=True)
class SignaturePolicy:
    """HMAC signature of the request body, e.g. ``X-Hub-Signature-256``."""

    header: str
    secret: str = field(repr=False)
    algorithm: str = "sha256"

    def verify(self, value: str, method: str, body: bytes) -> AuthResult:
        if method.upper() != "POST":
            return AuthResult(False, "non-POST request", self.header)
        if not self.secret:
            return AuthResult(False, "empty webhook secret", self.header)
        if not value.startswith(SIGNATURE_PREFIX):
            return AuthResult(False, f"malformed {self.header} header, sha256 not found", self.header)

        expected = value[len(SIGNATURE_PREFIX) :].strip()
        digest_size = hashlib.new(self.algorithm).digest_size * 2
        if len(expected) != digest_size:
            return AuthResult(False, f"malformed {self.algorithm} hash, length {len(expected)}", self.header)

        computed = hmac.new(self.secret.encode(), body, self.algorithm).hexdigest()
        if not hmac.compare_digest(computed.encode(), expected.encode()):
            return AuthResult(False, "signature mismatch", self.header)
        return AuthResult(True, header=self.header)


@dataclass(frozen=True)
class SharedSecretPolicy:
    """Header value must equal the secret verbatim."""

    header: str
    secret: str = field(repr=False)

    def verify(self, value: str, method: str, body: bytes) -> AuthResult:
        if not self.secret:
            return AuthResult(False, "empty webhook secret", self.header)
        if not hmac.compare_digest(value.encode(), self.secret.encode()):
            return AuthResult(False, "auth header value mismatch", self.header)
        return AuthResult(True, header=self.header)


WebhookPolicy = SignaturePolicy | SharedSecretPolicy


def policy_for(webhook: WebhookConfig) -> WebhookPolicy:
    """Select the check configured for a webhook."""
    secret = webhook.secret.get_secret_value()
    if webhook.kind is WebhookKind.SIGNATURE:
        return SignaturePolicy(header=webhook.header, secret=secret)
    return SharedSecretPolicy(header=webhook.header, secret=secret)


def _header_value(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
    return value or ""


def authenticate(
    policies: Iterable[WebhookPolicy],
    method: str,
    headers: Mapping[str, str],
    body: bytes,
) -> AuthResult:
    """Check a request against the configured webhooks.

    The first configured header present in the request decides the outcome.
    A request carrying none of them is rejected.
    """
    for policy in policies:
        value = _header_value(headers, policy.header)
        if not value:
            continue
        return policy.verify(value, method, body)
    return AuthResult(False, "auth header not found")
