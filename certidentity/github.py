"""Identities of GitHub Actions workflow runs."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional
from urllib.parse import quote, unquote

from .base import BaseIssuer
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize

GITHUB_URL = "https://github.com/"

_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_PATH_SAFE = "/$&+,:;=@"


def _clean(path: str) -> str:
    """Lexically clean a slash-separated path: no empty, ``.`` or ``..`` parts."""
    if not path:
        return "."
    rooted = path.startswith("/")
    stack: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if stack and stack[-1] != "..":
                stack.pop()
            elif not rooted:
                stack.append("..")
            continue
        stack.append(part)
    cleaned = ("/" if rooted else "") + "/".join(stack)
    return cleaned or "."


def _join(parts: list[str]) -> str:
    present = [part for part in parts if part]
    if not present:
        return ""
    return _clean("/".join(present))


@dataclass(frozen=True)
class _URL:
    """A parsed URL with the component rules used for certificate SANs."""

    scheme: str = ""
    opaque: str = ""
    userinfo: Optional[str] = None
    host: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""
    omit_host: bool = False

    def escaped_path(self) -> str:
        return quote(self.path, safe=_PATH_SAFE)

    def join_path(self, *elements: str) -> "_URL":
        """Append path elements, cleaning the result and keeping a trailing slash."""
        parts = [self.escaped_path(), *elements]
        if parts[0].startswith("/"):
            joined = _join(parts)
        else:
            parts[0] = "/" + parts[0]
            joined = _join(parts)[1:]
        if parts[-1].endswith("/") and not joined.endswith("/"):
            joined += "/"
        return replace(self, path=unquote(joined))

    def __str__(self) -> str:
        out: list[str] = []
        if self.scheme:
            out.append(self.scheme + ":")
        if self.opaque:
            out.append(self.opaque)
        else:
            if self.scheme or self.host or self.userinfo is not None:
                if not (self.omit_host and not self.host and self.userinfo is None):
                    if self.host or self.path or self.userinfo is not None:
                        out.append("//")
                    if self.userinfo is not None:
                        out.append(self.userinfo + "@")
                    out.append(self.host)
            path = self.escaped_path()
            if path and not path.startswith("/") and self.host:
                out.append("/")
            if not out and ":" in path.split("/", 1)[0]:
                out.append("./")
            out.append(path)
        if self.query:
            out.append("?" + self.query)
        if self.fragment:
            out.append("#" + self.fragment)
        return "".join(out)


def _parse_url(raw: str) -> _URL:
    """Parse ``raw`` into a URL, rejecting control characters and bad escapes."""
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in raw):
        raise ValueError(f"invalid control character in URL: {raw!r}")
    rest, _, fragment = raw.partition("#")
    if rest.startswith(":"):
        raise ValueError(f"missing protocol scheme in URL: {raw!r}")
    scheme = ""
    found = _SCHEME.match(rest)
    if found:
        scheme = found.group(1).lower()
        rest = rest[found.end():]
    rest, _, query = rest.partition("?")
    if scheme and rest and not rest.startswith("/"):
        return _URL(scheme=scheme, opaque=rest, query=query, fragment=fragment)
    if not scheme and ":" in rest.split("/", 1)[0]:
        raise ValueError("first path segment in URL cannot contain colon")

    userinfo: Optional[str] = None
    host = ""
    omit_host = False
    if (scheme or not rest.startswith("///")) and rest.startswith("//"):
        authority, slash, tail = rest[2:].partition("/")
        rest = slash + tail
        if "@" in authority:
            userinfo, _, host = authority.rpartition("@")
        else:
            host = authority
    elif scheme and rest.startswith("/"):
        omit_host = True
    if _BAD_ESCAPE.search(rest):
        raise ValueError(f"invalid URL escape in {raw!r}")
    return _URL(
        scheme=scheme,
        userinfo=userinfo,
        host=host,
        path=unquote(rest),
        query=query,
        fragment=fragment,
        omit_host=omit_host,
    )


def _string_claim(claims: Mapping[str, Any], key: str) -> str:
    value = claims.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TokenError(f"claim {key} is not a string")
    return value


_REQUIRED_CLAIMS = (
    "job_workflow_ref",
    "sha",
    "event_name",
    "repository",
    "workflow",
    "ref",
    "job_workflow_sha",
    "runner_environment",
    "repository_id",
    "repository_owner",
    "repository_owner_id",
    "repository_visibility",
    "workflow_ref",
    "workflow_sha",
    "run_id",
    "run_attempt",
)


@dataclass(frozen=True)
class WorkflowPrincipal(Principal):
    """A GitHub Actions workflow run."""

    subject: str = ""
    issuer: str = ""
    url: str = GITHUB_URL
    sha: str = ""
    event_name: str = ""
    repository: str = ""
    workflow: str = ""
    ref: str = ""
    job_workflow_ref: str = ""
    job_workflow_sha: str = ""
    runner_environment: str = ""
    repository_id: str = ""
    repository_owner: str = ""
    repository_owner_id: str = ""
    repository_visibility: str = ""
    workflow_ref: str = ""
    workflow_sha: str = ""
    run_id: str = ""
    run_attempt: str = ""

    @property
    def name(self) -> str:
        return self.subject

    def embed(self, cert: Certificate) -> None:
        """Set the job workflow URL as the URI SAN and add workflow extensions."""
        base = _parse_url(self.url)
        signer = str(base.join_path(self.job_workflow_ref))
        cert.uris = [signer]
        cert.extra_extensions = Extensions(
            issuer=self.issuer,
            github_workflow_trigger=self.event_name,
            github_workflow_sha=self.sha,
            github_workflow_name=self.workflow,
            github_workflow_repository=self.repository,
            github_workflow_ref=self.ref,
            build_signer_uri=signer,
            build_signer_digest=self.job_workflow_sha,
            runner_environment=self.runner_environment,
            source_repository_uri=str(base.join_path(self.repository)),
            source_repository_digest=self.sha,
            source_repository_ref=self.ref,
            source_repository_identifier=self.repository_id,
            source_repository_owner_uri=str(base.join_path(self.repository_owner)),
            source_repository_owner_identifier=self.repository_owner_id,
            build_config_uri=str(base.join_path(self.workflow_ref)),
            build_config_digest=self.workflow_sha,
            build_trigger=self.event_name,
            run_invocation_uri=str(
                base.join_path(
                    self.repository, "actions/runs", self.run_id, "attempts", self.run_attempt
                )
            ),
            source_repository_visibility_at_signing=self.repository_visibility,
        ).render()


def workflow_principal_from_id_token(token: IDToken) -> WorkflowPrincipal:
    """Build a workflow principal from a verified GitHub Actions ID token."""
    claims = token.decode_claims()
    values = {key: _string_claim(claims, key) for key in _REQUIRED_CLAIMS}
    for key in _REQUIRED_CLAIMS:
        if not values[key]:
            raise TokenError(f"missing {key} claim in ID token")
    return WorkflowPrincipal(
        subject=token.subject,
        issuer=token.issuer,
        url=GITHUB_URL,
        **values,
    )


class GithubIssuer(BaseIssuer):
    """Issuer of GitHub Actions ID tokens."""

    def authenticate(self, config: Config, token: str) -> WorkflowPrincipal:
        """Verify ``token`` and return the workflow run it names."""
        try:
            id_token = authorize(config, token)
        except TokenError as err:
            raise TokenError(f"authorizing github issuer: {err}") from err
        return workflow_principal_from_id_token(id_token)