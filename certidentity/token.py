"""OIDC ID tokens, issuer configuration and issuer discovery from raw JWTs."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

_B64URL = re.compile(r"^[A-Za-z0-9_-]*$")


class TokenError(ValueError):
    """Raised when a token is malformed or cannot be authenticated."""


@dataclass
class IDToken:
    """A verified OIDC ID token.

    ``claims`` holds the token payload, either as raw JSON or as a mapping.
    """

    issuer: str
    subject: str = ""
    claims: Union[bytes, str, Mapping[str, Any]] = b"{}"

    def decode_claims(self) -> dict[str, Any]:
        """Return the claims as a fresh dictionary."""
        raw = self.claims
        try:
            if isinstance(raw, Mapping):
                raw = json.dumps(raw)
            data = json.loads(raw)
        except (TypeError, ValueError) as err:
            raise TokenError(f"oidc: failed to unmarshal claims: {err}") from err
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise TokenError("oidc: failed to unmarshal claims: payload is not an object")
        return data


Verifier = Callable[[str], IDToken]


@dataclass
class IssuerConfig:
    """Configuration of one trusted OIDC issuer."""

    issuer_url: str
    client_id: str = ""
    type: str = ""
    issuer_claim: str = ""
    spiffe_trust_domain: str = ""
    verifier: Optional[Verifier] = None


@dataclass
class Config:
    """The set of configured OIDC issuers, keyed by issuer URL."""

    issuers: dict[str, IssuerConfig] = field(default_factory=dict)

    def get_issuer(self, url: str) -> Optional[IssuerConfig]:
        """Return the configuration for ``url``, or None if it is unknown."""
        return self.issuers.get(url)

    def get_verifier(self, url: str) -> Optional[Verifier]:
        """Return the token verifier configured for ``url``, if any."""
        issuer = self.get_issuer(url)
        if issuer is None:
            return None
        return issuer.verifier


def _decode_segment(segment: str) -> bytes:
    if not _B64URL.match(segment):
        raise TokenError("oidc: malformed jwt payload: illegal base64 data")
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as err:
        raise TokenError(f"oidc: malformed jwt payload: {err}") from err


def extract_issuer_url(token: str) -> str:
    """Read the ``iss`` claim from an unverified JWT."""
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenError(f"oidc: malformed jwt, expected 3 parts got {len(parts)}")
    raw = _decode_segment(parts[1])
    try:
        payload = json.loads(raw)
    except ValueError as err:
        raise TokenError(f"oidc: failed to unmarshal claims: {err}") from err
    if payload is None:
        return ""
    if not isinstance(payload, dict):
        raise TokenError("oidc: failed to unmarshal claims: payload is not an object")
    issuer = payload.get("iss")
    if issuer is None:
        return ""
    if not isinstance(issuer, str):
        raise TokenError("oidc: failed to unmarshal claims: iss is not a string")
    return issuer


def authorize(config: Config, token: str) -> IDToken:
    """Verify ``token`` with the verifier configured for its issuer."""
    issuer = extract_issuer_url(token)
    verifier = config.get_verifier(issuer)
    if verifier is None:
        raise TokenError(f"unsupported issuer: {issuer}")
    return verifier(token)