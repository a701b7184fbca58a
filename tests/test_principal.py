import base64
import json

import pytest

from certidentity.principal import (
    Certificate,
    Extension,
    Extensions,
    Issuer,
    IssuerPool,
    Principal,
)
from certidentity.token import Config, TokenError

ARC = (1, 3, 6, 1, 4, 1, 57264, 1)


def _jwt(payload) -> str:
    body = base64.urlsafe_b64encode(json.dumps(payload).encode()).rstrip(b"=").decode()
    return f"header.{body}.sig"


class _NamedPrincipal(Principal):
    def __init__(self, label):
        self._label = label

    @property
    def name(self):
        return self._label

    def embed(self, cert):
        cert.uris = [self._label]


class _FixedIssuer(Issuer):
    def __init__(self, url, label):
        self.url = url
        self.label = label

    def match(self, url):
        return url == self.url

    def authenticate(self, config, token):
        return _NamedPrincipal(self.label)


def test_render_empty_extensions():
    assert Extensions().render() == []


def test_render_issuer_has_raw_and_der_forms():
    issuer_url = "https://iss.example.com"
    rendered = Extensions(issuer=issuer_url).render()
    assert [ext.oid for ext in rendered] == [ARC + (1,), ARC + (8,)]
    assert rendered[0].value == issuer_url.encode()
    der = rendered[1].value
    assert der[0] == 0x0C
    assert der[1] == len(issuer_url)
    assert der[2:] == issuer_url.encode()


def test_render_long_value_uses_long_form_length():
    value = "x" * 200
    der = Extensions(build_trigger=value).render()[0].value
    assert der[1] == 0x81
    assert der[2] == len(value)
    assert der[3:] == value.encode()


def test_render_all_fields_ordered_by_oid():
    fields = {name: name for name in Extensions.__dataclass_fields__}
    rendered = Extensions(**fields).render()
    arcs = [ext.oid[-1] for ext in rendered]
    assert arcs == sorted(arcs)
    assert set(arcs) == set(range(1, 7)) | set(range(8, 23))
    assert all(not ext.critical for ext in rendered)


def test_certificate_extension_lookup():
    ext = Extension(ARC + (1,), b"value")
    cert = Certificate(extra_extensions=[ext])
    assert cert.extension(ARC + (1,)) is ext
    assert cert.extension("1.3.6.1.4.1.57264.1.1") is ext
    assert cert.extension(ARC + (2,)) is None


def test_principal_is_abstract():
    with pytest.raises(TypeError):
        Principal()


def test_issuer_is_abstract():
    with pytest.raises(TypeError):
        Issuer()


def test_pool_uses_first_matching_issuer():
    pool = IssuerPool(
        [
            _FixedIssuer("https://a.example.com", "first"),
            _FixedIssuer("https://b.example.com", "second"),
            _FixedIssuer("https://b.example.com", "third"),
        ]
    )
    principal = pool.authenticate(Config(), _jwt({"iss": "https://b.example.com"}))
    assert principal.name == "second"
    cert = Certificate()
    principal.embed(cert)
    assert cert.uris == ["second"]


def test_pool_without_match_fails():
    pool = IssuerPool([_FixedIssuer("https://a.example.com", "first")])
    with pytest.raises(TokenError, match="https://z.example.com"):
        pool.authenticate(Config(), _jwt({"iss": "https://z.example.com"}))


def test_pool_rejects_malformed_token():
    pool = IssuerPool([_FixedIssuer("", "any")])
    with pytest.raises(TokenError, match="expected 3 parts"):
        pool.authenticate(Config(), "token")


def test_pool_iterates_issuers():
    issuers = [_FixedIssuer("a", "1"), _FixedIssuer("b", "2")]
    pool = IssuerPool(issuers)
    assert list(pool) == issuers
    assert len(pool) == 2