import base64
import json

import pytest

from certidentity.email import (
    EmailIssuer,
    EmailPrincipal,
    is_email,
    principal_from_id_token,
)
from certidentity.principal import Certificate
from certidentity.token import Config, IDToken, IssuerConfig, TokenError

ISSUER_OID = (1, 3, 6, 1, 4, 1, 57264, 1, 1)


def _jwt(issuer):
    payload = base64.urlsafe_b64encode(json.dumps({"iss": issuer}).encode())
    return "e30." + payload.rstrip(b"=").decode() + ".sig"


def _id_token(claims):
    return IDToken(issuer=claims["iss"], subject=claims["sub"], claims=json.dumps(claims))


def _config(url, issuer_claim=""):
    return Config(
        issuers={
            url: IssuerConfig(
                issuer_url=url,
                type="email",
                client_id="sigstore",
                issuer_claim=issuer_claim,
            )
        }
    )


def _claims(**overrides):
    claims = {
        "aud": "sigstore",
        "iss": "https://iss.example.com",
        "sub": "doesntmatter",
        "email": "alice@example.com",
        "email_verified": True,
    }
    claims.update(overrides)
    return claims


def test_match():
    issuer = EmailIssuer("test-issuer-url")
    assert issuer.match("test-issuer-url") is True
    assert issuer.match("some-other-url") is False


def test_authenticate():
    id_token = IDToken(
        issuer="https://iss.example.com", subject="subject", claims=json.dumps(_claims())
    )
    config = _config("https://iss.example.com")
    config.issuers["https://iss.example.com"].verifier = lambda _raw: id_token
    principal = EmailIssuer("test-issuer-url").authenticate(
        config, _jwt("https://iss.example.com")
    )
    assert principal.name == "alice@example.com"


def test_authenticate_malformed_token():
    with pytest.raises(TokenError, match="malformed jwt"):
        EmailIssuer("test-issuer-url").authenticate(Config(), "token")


def test_well_formed_token():
    principal = principal_from_id_token(
        _config("https://iss.example.com"), _id_token(_claims())
    )
    assert principal == EmailPrincipal(
        issuer="https://iss.example.com", address="alice@example.com"
    )


def test_custom_issuer_claim():
    claims = _claims(
        iss="https://dex.other.com", federated={"issuer": "https://example.com"}
    )
    config = _config("https://dex.other.com", issuer_claim="$.federated.issuer")
    principal = principal_from_id_token(config, _id_token(claims))
    assert principal == EmailPrincipal(
        issuer="https://example.com", address="alice@example.com"
    )


def test_custom_issuer_claim_missing():
    config = _config("https://dex.other.com", issuer_claim="$.federated.issuer")
    with pytest.raises(TokenError):
        principal_from_id_token(config, _id_token(_claims(iss="https://dex.other.com")))


def test_email_not_verified():
    with pytest.raises(TokenError, match="email_verified"):
        principal_from_id_token(
            _config("https://iss.example.com"), _id_token(_claims(email_verified=False))
        )


def test_missing_email_claim():
    claims = _claims()
    del claims["email"]
    with pytest.raises(TokenError, match="email"):
        principal_from_id_token(_config("https://iss.example.com"), _id_token(claims))


def test_invalid_email_address():
    with pytest.raises(TokenError, match="not valid"):
        principal_from_id_token(
            _config("https://iss.example.com"), _id_token(_claims(email="foo.com"))
        )


def test_no_issuer_configured():
    with pytest.raises(TokenError, match="invalid configuration"):
        principal_from_id_token(
            _config("https://iss.example.com"),
            _id_token(_claims(iss="https://nope.example.com")),
        )


def test_name_matches_email():
    principal = principal_from_id_token(
        _config("https://iss.example.com"), _id_token(_claims())
    )
    assert principal.name == "alice@example.com"


def test_embed_sets_email_and_issuer():
    cert = Certificate()
    EmailPrincipal(address="alice@example.com", issuer="https://iss.example.com").embed(cert)
    assert cert.email_addresses == ["alice@example.com"]
    assert cert.extension(ISSUER_OID).value == b"https://iss.example.com"


@pytest.mark.parametrize(
    "address, expected",
    [
        ("alice@example.com", True),
        ("alice.smith+tag@mail.example.com", True),
        ("foo.com", False),
        ("alice@", False),
        ("@example.com", False),
        ("alice@example", False),
        ("alice..smith@example.com", False),
    ],
)
def test_is_email(address, expected):
    assert is_email(address) is expected