# certidentity

Turn verified OIDC ID tokens into certificate identities.

Given an ID token from a supported provider, `certidentity` works out who the
caller is and what goes into the certificate issued to them: the subject
alternative name (an e-mail address or a URI) and the custom X.509 extensions
that record the token's issuer and, for CI providers, details of the build.

Supported providers:

| Module | Issuer | Principal |
| --- | --- | --- |
| `certidentity.email` | `EmailIssuer` | `EmailPrincipal` |
| `certidentity.kubernetes` | `KubernetesIssuer` | `KubernetesPrincipal` |
| `certidentity.spiffe` | `SpiffeIssuer` | `SpiffePrincipal` |
| `certidentity.buildkite` | `BuildkiteIssuer` | `JobPrincipal` |
| `certidentity.github` | `GithubIssuer` | `WorkflowPrincipal` |
| `certidentity.gitlab` | `GitlabIssuer` | `GitlabJobPrincipal` |

The package has no runtime dependencies.

## Matching issuers

Every issuer is built around an issuer URL. `BaseIssuer.match` accepts the URL
itself; otherwise it turns the configured URL into a pattern in which `*`
stands for one run of letters, digits, `-` and `_`, and reports whether that
pattern is found in the URL:

```python
from certidentity.base import BaseIssuer, meta_regex

issuer = BaseIssuer("https://oidc.*.example.com/id/*")
issuer.match("https://oidc.us-west-2.example.com/id/ABC123")  # True
issuer.match("https://oidc.us.west.2.example.com/id/ABC123")  # False

meta_regex("https://*.example.com")  # the compiled pattern
```

`BaseIssuer.authenticate` always raises `TokenError`: each provider supplies
its own.

## Configuring issuers

`certidentity.token.Config` maps issuer URLs to `IssuerConfig` entries. Each
entry may carry a `verifier`: a callable that takes the raw token string,
checks it, and returns an `IDToken` (issuer, subject and claims). Some
providers also read other fields: `issuer_claim` (a `$.a.b` path to a claim
used as the issuer by `certidentity.email`) and `spiffe_trust_domain` (used by
`certidentity.spiffe`).

```python
from certidentity.token import Config, IssuerConfig, IDToken

def verify(raw_token: str) -> IDToken:
    ...  # check the signature, then:
    return IDToken(
        issuer="https://accounts.example.com",
        subject="alice",
        claims={"email": "alice@example.com", "email_verified": True},
    )

config = Config({
    "https://accounts.example.com": IssuerConfig(
        issuer_url="https://accounts.example.com",
        client_id="sigstore",
        verifier=verify,
    ),
})
```

`certidentity.token.authorize(config, raw_token)` reads the token's `iss`
claim, looks up the verifier for it and calls it; an unknown issuer raises
`TokenError`. The issuer URL of a compact JWT can also be read without
verifying it with `extract_issuer_url(raw_token)`.

## Authenticating a token

An `IssuerPool` reads the `iss` claim from a token, picks the first issuer
that matches it and asks that issuer to authenticate the token:

```python
from certidentity.principal import IssuerPool, Certificate
from certidentity.email import EmailIssuer
from certidentity.github import GithubIssuer

pool = IssuerPool([
    EmailIssuer("https://accounts.example.com"),
    GithubIssuer("https://ci.example.com"),
])

principal = pool.authenticate(config, raw_token)
principal.name           # the value the proof of possession must sign
cert = Certificate()
principal.embed(cert)    # fills cert.email_addresses / cert.uris / cert.extra_extensions
cert.extension("1.3.6.1.4.1.57264.1.1")  # the issuer extension
```

Failures raise `certidentity.token.TokenError` (a `ValueError`) with a message
naming the missing or invalid claim; `embed` raises `ValueError` for URLs that
cannot be used.

`certidentity.principal.Extensions(...).render()` produces the list of
`Extension` values for every non-empty field, ordered by OID.

## Certificate transparency helpers

`certidentity.ctl.build_ct_chain(cert, chain)` returns the DER bytes of the
leaf followed by its chain; each certificate may be DER bytes or an object
with a `raw` attribute. `to_add_chain_response(sct)` converts a
`SignedCertificateTimestamp` into an `AddChainResponse`, with base64-encoded
extensions and the signature marshalled by `DigitallySigned.marshal()`.

## What it does not do

`certidentity` does not fetch provider keys or check token signatures itself;
that is the job of the verifier you put in each `IssuerConfig`. It does not
sign or encode certificates, talk to a transparency log, or run a server or
command: `Certificate` only holds the identity fields to be placed in a
certificate that something else issues.

## Running the tests

```
pip install -e ".[test]"
pytest
```