"""Identities of jobs running in Buildkite pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .base import BaseIssuer
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize


def _string_claim(claims: Mapping[str, Any], key: str) -> str:
    value = claims.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TokenError(f"claim {key} is not a string")
    return value


def _checked_url(url: str) -> str:
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        raise ValueError(f"invalid control character in URL: {url!r}")
    return url


@dataclass(frozen=True)
class JobPrincipal(Principal):
    """A Buildkite job, identified by its token subject and pipeline URL."""

    subject: str
    issuer: str
    url: str

    @property
    def name(self) -> str:
        return self.subject

    def embed(self, cert: Certificate) -> None:
        """Set the pipeline URL as the URI SAN and add the issuer extension."""
        cert.uris = [_checked_url(self.url)]
        cert.extra_extensions = Extensions(issuer=self.issuer).render()


def job_principal_from_id_token(token: IDToken) -> JobPrincipal:
    """Build a job principal from a verified Buildkite ID token."""
    claims = token.decode_claims()
    organization = _string_claim(claims, "organization_slug")
    pipeline = _string_claim(claims, "pipeline_slug")
    if not organization:
        raise TokenError("missing organization_slug claim in ID token")
    if not pipeline:
        raise TokenError("missing pipeline_slug claim in ID token")
    return JobPrincipal(
        subject=token.subject,
        issuer=token.issuer,
        url=f"https://buildkite.com/{organization}/{pipeline}",
    )


class BuildkiteIssuer(BaseIssuer):
    """Issuer of Buildkite agent ID tokens."""

    def authenticate(self, config: Config, token: str) -> JobPrincipal:
        """Verify ``token`` and return the Buildkite job it names."""
        return job_principal_from_id_token(authorize(config, token))