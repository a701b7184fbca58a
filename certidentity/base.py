"""The common issuer behaviour: URL matching, including wildcard issuers."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .principal import Issuer, Principal
from .token import Config, TokenError

_WILDCARD = "[-_a-zA-Z0-9]+"


def meta_regex(issuer: str) -> re.Pattern[str]:
    """Compile a wildcard issuer URL, where ``*`` matches one URL-safe label."""
    quoted = re.escape(issuer)
    return re.compile(quoted.replace(re.escape("*"), _WILDCARD))


@dataclass
class BaseIssuer(Issuer):
    """An issuer that matches URLs; concrete issuers add authentication."""

    issuer_url: str

    def match(self, url: str) -> bool:
        """Match ``url`` exactly or against the wildcard issuer pattern."""
        if url == self.issuer_url:
            return True
        try:
            pattern = meta_regex(self.issuer_url)
        except re.error:
            return False
        return pattern.search(url) is not None

    def authenticate(self, config: Config, token: str) -> Principal:
        """Always fails: the base issuer has no way to verify tokens."""
        raise TokenError("the base issuer cannot authenticate tokens")