"""Identities of GitLab CI jobs."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from .base import BaseIssuer
from .github import _parse_url, _string_claim
from .principal import Certificate, Extensions, Principal
from .token import Config, IDToken, TokenError, authorize

GITLAB_URL = "https://gitlab.com/"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_REQUIRED_CLAIMS = (
    "project_path",
    "pipeline_source",
    "pipeline_id",
    "ci_config_ref_uri",
    "job_id",
    "ref",
    "ref_type",
    "namespace_path",
    "namespace_id",
    "project_id",
    "sha",
    "runner_environment",
)

_OPTIONAL_CLAIMS = ("ci_config_sha", "project_visibility")

_REF_PREFIXES = {"branch": "refs/heads/", "tag": "refs/tags/"}


def _int_claim(claims: Mapping[str, Any], key: str) -> int:
    value = claims.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise TokenError(f"claim {key} is not an integer")
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise TokenError(f"claim {key} is out of range")
    return value


@dataclass(frozen=True)
class GitlabJobPrincipal(Principal):
    """A GitLab CI job."""

    subject: str = ""
    issuer: str = ""
    url: str = GITLAB_URL
    event_name: str = ""
    pipeline_id: str = ""
    ci_config_ref_uri: str = ""
    ci_config_sha: str = ""
    repository: str = ""
    repository_id: str = ""
    repository_owner: str = ""
    repository_owner_id: str = ""
    job_id: str = ""
    ref: str = ""
    sha: str = ""
    runner_id: int = 0
    runner_environment: str = ""
    project_visibility: str = ""

    @property
    def name(self) -> str:
        return self.subject

    def embed(self, cert: Certificate) -> None:
        """Set the CI config URL as the URI SAN and add job extensions."""
        base = _parse_url(self.url)
        config_ref = replace(_parse_url(self.ci_config_ref_uri), scheme="https")
        if base.host == config_ref.host:
            config_ref = replace(config_ref, scheme=base.scheme)
        config_uri = str(config_ref)
        cert.uris = [config_uri]
        cert.extra_extensions = Extensions(
            issuer=self.issuer,
            build_config_uri=config_uri,
            build_config_digest=self.ci_config_sha,
            build_signer_uri=config_uri,
            build_signer_digest=self.ci_config_sha,
            runner_environment=self.runner_environment,
            source_repository_uri=str(base.join_path(self.repository)),
            source_repository_digest=self.sha,
            source_repository_ref=self.ref,
            source_repository_identifier=self.repository_id,
            source_repository_owner_uri=str(base.join_path(self.repository_owner)),
            source_repository_owner_identifier=self.repository_owner_id,
            build_trigger=self.event_name,
            run_invocation_uri=str(base.join_path(self.repository, "/-/jobs/", self.job_id)),
            source_repository_visibility_at_signing=self.project_visibility,
        ).render()


def job_principal_from_id_token(token: IDToken) -> GitlabJobPrincipal:
    """Build a job principal from a verified GitLab CI ID token."""
    claims = token.decode_claims()
    values = {key: _string_claim(claims, key) for key in _REQUIRED_CLAIMS + _OPTIONAL_CLAIMS}
    runner_id = _int_claim(claims, "runner_id")
    for key in _REQUIRED_CLAIMS:
        if not values[key]:
            raise TokenError(f"missing {key} claim in ID token")
    if runner_id == 0:
        raise TokenError("missing runner_id claim in ID token")

    prefix = _REF_PREFIXES.get(values["ref_type"])
    if prefix is None:
        raise TokenError(f"unexpected ref_type: {values['ref_type']}")

    return GitlabJobPrincipal(
        subject=token.subject,
        issuer=token.issuer,
        url=GITLAB_URL,
        event_name=values["pipeline_source"],
        pipeline_id=values["pipeline_id"],
        ci_config_ref_uri=values["ci_config_ref_uri"],
        ci_config_sha=values["ci_config_sha"],
        repository=values["project_path"],
        ref=prefix + values["ref"],
        repository_id=values["project_id"],
        repository_owner=values["namespace_path"],
        repository_owner_id=values["namespace_id"],
        job_id=values["job_id"],
        sha=values["sha"],
        runner_id=runner_id,
        runner_environment=values["runner_environment"],
        project_visibility=values["project_visibility"],
    )


class GitlabIssuer(BaseIssuer):
    """Issuer of GitLab CI ID tokens."""

    def authenticate(self, config: Config, token: str) -> GitlabJobPrincipal:
        """Verify ``token`` and return the CI job it names."""
        return job_principal_from_id_token(authorize(config, token))