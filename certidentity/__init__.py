"""Map verified OIDC ID tokens to certificate identities and extensions."""

__version__ = "0.1.0"

__all__ = [
    "base",
    "buildkite",
    "ctl",
    "email",
    "github",
    "gitlab",
    "kubernetes",
    "principal",
    "spiffe",
    "token",
]