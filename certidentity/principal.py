"""Principals, certificate templates and the issuer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .token import Config, TokenError, extract_issuer_url

OID = tuple[int, ...]

_SIGSTORE_ARC: OID = (1, 3, 6, 1, 4, 1, 57264, 1)

# Early extensions carry the raw string bytes.
_RAW_FIELDS = (
    ("issuer", 1),
    ("github_workflow_trigger", 2),
    ("github_workflow_sha", 3),
    ("github_workflow_name", 4),
    ("github_workflow_repository", 5),
    ("github_workflow_ref", 6),
)

# Later extensions carry a DER-encoded UTF8String.
_DER_FIELDS = (
    ("issuer", 8),
    ("build_signer_uri", 9),
    ("build_signer_digest", 10),
    ("runner_environment", 11),
    ("source_repository_uri", 12),
    ("source_repository_digest", 13),
    ("source_repository_ref", 14),
    ("source_repository_identifier", 15),
    ("source_repository_owner_uri", 16),
    ("source_repository_owner_identifier", 17),
    ("build_config_uri", 18),
    ("build_config_digest", 19),
    ("build_trigger", 20),
    ("run_invocation_uri", 21),
    ("source_repository_visibility_at_signing", 22),
)

_UTF8_STRING_TAG = 0x0C


def _der_length(length: int) -> bytes:
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def _der_utf8(value: str) -> bytes:
    data = value.encode("utf-8")
    return bytes([_UTF8_STRING_TAG]) + _der_length(len(data)) + data


def _oid(value: Union[str, Iterable[int]]) -> OID:
    if isinstance(value, str):
        return tuple(int(part) for part in value.split("."))
    return tuple(value)


@dataclass(frozen=True)
class Extension:
    """An X.509 extension: object identifier and encoded value."""

    oid: OID
    value: bytes
    critical: bool = False


@dataclass(frozen=True)
class Extensions:
    """Identity facts to embed in a certificate as custom extensions."""

    issuer: str = ""
    github_workflow_trigger: str = ""
    github_workflow_sha: str = ""
    github_workflow_name: str = ""
    github_workflow_repository: str = ""
    github_workflow_ref: str = ""
    build_signer_uri: str = ""
    build_signer_digest: str = ""
    runner_environment: str = ""
    source_repository_uri: str = ""
    source_repository_digest: str = ""
    source_repository_ref: str = ""
    source_repository_identifier: str = ""
    source_repository_owner_uri: str = ""
    source_repository_owner_identifier: str = ""
    build_config_uri: str = ""
    build_config_digest: str = ""
    build_trigger: str = ""
    run_invocation_uri: str = ""
    source_repository_visibility_at_signing: str = ""

    def render(self) -> list[Extension]:
        """Return one extension for every non-empty field, ordered by OID."""
        rendered = [
            Extension(_SIGSTORE_ARC + (arc,), value.encode("utf-8"))
            for attr, arc in _RAW_FIELDS
            if (value := getattr(self, attr))
        ]
        rendered.extend(
            Extension(_SIGSTORE_ARC + (arc,), _der_utf8(value))
            for attr, arc in _DER_FIELDS
            if (value := getattr(self, attr))
        )
        return rendered


@dataclass
class Certificate:
    """The identity-bearing parts of a certificate being issued."""

    email_addresses: list[str] = field(default_factory=list)
    uris: list[str] = field(default_factory=list)
    extra_extensions: list[Extension] = field(default_factory=list)
    raw: bytes = b""

    def extension(self, oid: Union[str, Iterable[int]]) -> Optional[Extension]:
        """Return the extra extension with ``oid`` (tuple or dotted string)."""
        key = _oid(oid)
        return next((ext for ext in self.extra_extensions if ext.oid == key), None)


class Principal(ABC):
    """An authenticated identity that can be written into a certificate."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The e-mail or subject that the proof of possession must sign."""

    @abstractmethod
    def embed(self, cert: Certificate) -> None:
        """Write subject alternative names and extensions into ``cert``."""


class Issuer(ABC):
    """A source of identity tokens that can authenticate them."""

    @abstractmethod
    def match(self, url: str) -> bool:
        """Tell whether this issuer handles tokens from ``url``."""

    @abstractmethod
    def authenticate(self, config: Config, token: str) -> Principal:
        """Verify ``token`` and return the principal it names."""


@dataclass
class IssuerPool:
    """An ordered collection of issuers; the first match authenticates."""

    issuers: list[Issuer] = field(default_factory=list)

    def __iter__(self):
        return iter(self.issuers)

    def __len__(self) -> int:
        return len(self.issuers)

    def authenticate(self, config: Config, token: str) -> Principal:
        """Authenticate ``token`` with the first issuer matching its URL."""
        url = extract_issuer_url(token)
        for issuer in self.issuers:
            if issuer.match(url):
                return issuer.authenticate(config, token)
        raise TokenError(
            f"failed to match issuer URL {url} from token with any configured providers"
        )