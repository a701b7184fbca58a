"""Identities of SPIFFE workloads."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .base import BaseIssuer
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize

_SCHEME = "spiffe://"
_TRUST_DOMAIN = re.compile(r"^[a-z0-9._-]+$")
_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")


def _checked_url(url: str) -> str:
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        raise ValueError(f"invalid control character in URL: {url!r}")
    return url


def _check_trust_domain(domain: str) -> str:
    if not domain:
        raise ValueError("trust domain is missing")
    if not _TRUST_DOMAIN.match(domain):
        raise ValueError("trust domain characters are limited to lowercase letters, numbers, dots, dashes, and underscores")
    return domain


def _parse_id(spiffe_id: str) -> tuple[str, str]:
    if not spiffe_id.startswith(_SCHEME):
        raise ValueError("scheme is missing or invalid")
    domain, slash, rest = spiffe_id[len(_SCHEME):].partition("/")
    _check_trust_domain(domain)
    if not slash:
        return domain, ""
    for segment in rest.split("/"):
        if not segment:
            raise ValueError("path cannot contain empty segments")
        if segment in (".", ".."):
            raise ValueError("path cannot contain dot segments")
        if not _SEGMENT.match(segment):
            raise ValueError("path segment characters are limited to letters, numbers, dots, dashes, and underscores")
    return domain, "/" + rest


def _parse_trust_domain(value: str) -> str:
    if ":/" in value:
        return _parse_id(value)[0]
    return _check_trust_domain(value)


def valid_spiffe_id(spiffe_id: str, trust_domain: str) -> None:
    """Check that ``spiffe_id`` is well formed and in ``trust_domain``."""
    try:
        expected = _parse_trust_domain(trust_domain)
    except ValueError as err:
        raise TokenError(
            f"unable to parse trust domain from configuration {trust_domain}: {err}"
        ) from err
    try:
        actual, _path = _parse_id(spiffe_id)
    except ValueError as err:
        raise TokenError(f"invalid spiffe ID provided: {spiffe_id}") from err
    if actual != expected:
        raise TokenError(
            f"spiffe ID trust domain {actual} doesn't match configured trust domain {trust_domain}"
        )


@dataclass(frozen=True)
class SpiffePrincipal(Principal):
    """A workload identified by its SPIFFE ID."""

    spiffe_id: str
    issuer: str

    @property
    def name(self) -> str:
        return self.spiffe_id

    def embed(self, cert: Certificate) -> None:
        """Set the SPIFFE ID as the URI SAN and add the issuer extension."""
        cert.uris = [_checked_url(self.spiffe_id)]
        cert.extra_extensions = Extensions(issuer=self.issuer).render()


def principal_from_id_token(config: Config, token: IDToken) -> SpiffePrincipal:
    """Build a SPIFFE principal, checking the subject against the trust domain."""
    issuer_config = config.get_issuer(token.issuer)
    if issuer_config is None:
        raise TokenError("invalid configuration for OIDC ID Token issuer")
    valid_spiffe_id(token.subject, issuer_config.spiffe_trust_domain)
    return SpiffePrincipal(spiffe_id=token.subject, issuer=token.issuer)


class SpiffeIssuer(BaseIssuer):
    """Issuer of SPIFFE JWT-SVIDs."""

    def authenticate(self, config: Config, token: str) -> SpiffePrincipal:
        """Verify ``token`` and return the workload it names."""
        return principal_from_id_token(config, authorize(config, token))