"""Helpers for submitting issued certificates to a certificate transparency log."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Iterable

_LOG_ID_LENGTH = 32
_MAX_SIGNATURE_LENGTH = 0xFFFF


@dataclass(frozen=True)
class DigitallySigned:
    """A TLS ``DigitallySigned`` structure: algorithm pair plus signature bytes."""

    hash_algorithm: int
    signature_algorithm: int
    signature: bytes = b""

    def marshal(self) -> bytes:
        """Encode the structure in TLS presentation format."""
        for label, value in (
            ("hash algorithm", self.hash_algorithm),
            ("signature algorithm", self.signature_algorithm),
        ):
            if not 0 <= value <= 0xFF:
                raise ValueError(f"{label} {value} out of range 0..255")
        if len(self.signature) > _MAX_SIGNATURE_LENGTH:
            raise ValueError(
                f"signature length {len(self.signature)} exceeds {_MAX_SIGNATURE_LENGTH}"
            )
        return (
            bytes([self.hash_algorithm, self.signature_algorithm])
            + len(self.signature).to_bytes(2, "big")
            + bytes(self.signature)
        )


@dataclass(frozen=True)
class SignedCertificateTimestamp:
    """A signed certificate timestamp returned by a transparency log."""

    sct_version: int
    log_id: bytes
    timestamp: int
    extensions: bytes
    signature: DigitallySigned

    def __post_init__(self) -> None:
        if len(self.log_id) != _LOG_ID_LENGTH:
            raise ValueError(
                f"log ID must be {_LOG_ID_LENGTH} bytes, got {len(self.log_id)}"
            )


@dataclass(frozen=True)
class AddChainResponse:
    """The JSON-facing form of a transparency log's add-chain answer."""

    sct_version: int
    id: bytes
    timestamp: int
    extensions: str
    signature: bytes


def _der(cert: Any) -> bytes:
    if isinstance(cert, (bytes, bytearray, memoryview)):
        return bytes(cert)
    return bytes(cert.raw)


def build_ct_chain(cert: Any, chain: Iterable[Any]) -> list[bytes]:
    """Return the DER encodings of the leaf followed by its chain, in order.

    Each certificate may be given as DER bytes or as an object with a ``raw``
    attribute holding them.
    """
    return [_der(cert), *(_der(c) for c in chain)]


def to_add_chain_response(sct: SignedCertificateTimestamp) -> AddChainResponse:
    """Convert an SCT into an add-chain response."""
    try:
        signature = sct.signature.marshal()
    except ValueError as err:
        raise ValueError(f"failed to marshal signature: {err}") from err
    return AddChainResponse(
        sct_version=sct.sct_version,
        id=bytes(sct.log_id),
        timestamp=sct.timestamp,
        extensions=base64.b64encode(bytes(sct.extensions)).decode("ascii"),
        signature=signature,
    )