import pytest

from certidentity.ctl import (
    AddChainResponse,
    DigitallySigned,
    SignedCertificateTimestamp,
    build_ct_chain,
    to_add_chain_response,
)
from certidentity.principal import Certificate


def _sct(**overrides):
    values = dict(
        sct_version=0,
        log_id=bytes([1, 2, 3, 4]) + bytes(28),
        timestamp=12345,
        extensions=bytes([1, 2, 3]),
        signature=DigitallySigned(hash_algorithm=2, signature_algorithm=3),
    )
    values.update(overrides)
    return SignedCertificateTimestamp(**values)


def test_build_ct_chain_keeps_order_and_length():
    certs = [Certificate(raw=b"leaf"), Certificate(raw=b"sub"), Certificate(raw=b"root")]
    chain = build_ct_chain(certs[0], certs[1:3])
    assert len(chain) == len(certs)
    assert chain == [c.raw for c in certs]


def test_build_ct_chain_accepts_der_bytes():
    assert build_ct_chain(b"leaf", [b"root"]) == [b"leaf", b"root"]


def test_build_ct_chain_without_intermediates():
    assert build_ct_chain(b"only", []) == [b"only"]


def test_to_add_chain_response():
    sct = _sct()
    resp = to_add_chain_response(sct)
    assert isinstance(resp, AddChainResponse)
    assert resp.sct_version == sct.sct_version
    assert resp.id == sct.log_id
    assert resp.timestamp == sct.timestamp
    assert resp.extensions == "AQID"
    assert resp.signature == sct.signature.marshal()


def test_signature_wire_format():
    assert DigitallySigned(2, 3).marshal() == b"\x02\x03\x00\x00"
    assert DigitallySigned(4, 3, b"ab").marshal() == b"\x04\x03\x00\x02ab"


def test_signature_too_long_fails():
    sct = _sct(signature=DigitallySigned(2, 3, bytes(0x10000)))
    with pytest.raises(ValueError, match="failed to marshal signature"):
        to_add_chain_response(sct)


def test_algorithm_out_of_range_fails():
    with pytest.raises(ValueError):
        DigitallySigned(256, 3).marshal()


def test_log_id_must_be_32_bytes():
    with pytest.raises(ValueError):
        _sct(log_id=b"\x01\x02")