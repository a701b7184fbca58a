"""Identities of Kubernetes service accounts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .base import BaseIssuer
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize


def _checked_url(url: str) -> str:
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        raise ValueError(f"invalid control character in URL: {url!r}")
    return url


def _section(claims: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = claims.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TokenError(f"claim {key} is not an object")
    return value


def _text(claims: Mapping[str, Any], key: str) -> str:
    value = claims.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TokenError(f"claim {key} is not a string")
    return value


def _service_account_uri(token: IDToken) -> str:
    k8s = _section(token.decode_claims(), "kubernetes.io")
    namespace = _text(k8s, "namespace")
    account = _text(_section(k8s, "serviceaccount"), "name")
    return f"https://kubernetes.io/namespaces/{namespace}/serviceaccounts/{account}"


@dataclass(frozen=True)
class KubernetesPrincipal(Principal):
    """A Kubernetes service account."""

    subject: str
    issuer: str
    uri: str

    @property
    def name(self) -> str:
        return self.subject

    def embed(self, cert: Certificate) -> None:
        """Set the service account URI SAN and add the issuer extension."""
        cert.uris = [_checked_url(self.uri)]
        cert.extra_extensions = Extensions(issuer=self.issuer).render()


def principal_from_id_token(token: IDToken) -> KubernetesPrincipal:
    """Build a service account principal from a verified ID token."""
    return KubernetesPrincipal(
        subject=token.subject,
        issuer=token.issuer,
        uri=_service_account_uri(token),
    )


class KubernetesIssuer(BaseIssuer):
    """Issuer of Kubernetes service account tokens."""

    def authenticate(self, config: Config, token: str) -> KubernetesPrincipal:
        """Verify ``token`` and return the service account it names."""
        return principal_from_id_token(authorize(config, token))