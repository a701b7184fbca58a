"""Identities of people, by verified e-mail address."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from .base import BaseIssuer
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize

_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
_EMAIL = re.compile(
    r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    rf"@{_LABEL}(?:\.{_LABEL})+$"
)


def is_email(address: str) -> bool:
    """Tell whether ``address`` is a syntactically valid e-mail address."""
    return bool(_EMAIL.match(address))


def _claim_at_path(claims: Mapping[str, Any], path: str) -> Any:
    if not path.startswith("$"):
        raise TokenError(f"unsupported claim path: {path}")
    value: Any = claims
    for part in filter(None, path[1:].split(".")):
        if not isinstance(value, Mapping) or part not in value:
            raise TokenError(f"claim {path} not found in ID token")
        value = value[part]
    return value


def _issuer_from_token(token: IDToken, issuer_claim: str) -> str:
    if not issuer_claim:
        return token.issuer
    value = _claim_at_path(token.decode_claims(), issuer_claim)
    if not isinstance(value, str):
        raise TokenError(f"claim {issuer_claim} is not a string")
    return value


def _email_from_token(token: IDToken) -> tuple[str, bool]:
    claims = token.decode_claims()
    address = claims.get("email")
    if address is None or address == "":
        raise TokenError("token missing email claim")
    if not isinstance(address, str):
        raise TokenError("email claim is not a string")
    verified = claims.get("email_verified", False)
    if not isinstance(verified, bool):
        raise TokenError("email_verified claim is not a boolean")
    return address, verified


@dataclass(frozen=True)
class EmailPrincipal(Principal):
    """A person identified by a verified e-mail address."""

    address: str
    issuer: str

    @property
    def name(self) -> str:
        return self.address

    def embed(self, cert: Certificate) -> None:
        """Set the e-mail SAN and add the issuer extension."""
        cert.email_addresses = [self.address]
        cert.extra_extensions = Extensions(issuer=self.issuer).render()


def principal_from_id_token(config: Config, token: IDToken) -> EmailPrincipal:
    """Build an e-mail principal from a verified ID token."""
    address, verified = _email_from_token(token)
    if not verified:
        raise TokenError("email_verified claim was false")
    if not is_email(address):
        raise TokenError("email address is not valid")
    issuer_config = config.get_issuer(token.issuer)
    if issuer_config is None:
        raise TokenError("invalid configuration for OIDC ID Token issuer")
    issuer = _issuer_from_token(token, issuer_config.issuer_claim)
    return EmailPrincipal(address=address, issuer=issuer)


class EmailIssuer(BaseIssuer):
    """Issuer of ID tokens that carry a verified e-mail address."""

    def authenticate(self, config: Config, token: str) -> EmailPrincipal:
        """Verify ``token`` and return the e-mail identity it names."""
        return principal_from_id_token(config, authorize(config, token))