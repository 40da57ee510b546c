"""Connection parameters, validated once at the boundary."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlparse

from jenkins_bridge.errors import ValidationError

SERVICE_KEY = "service:build:jenkins"

PARAMETER_URL = SERVICE_KEY + ":url"
PARAMETER_USER = SERVICE_KEY + ":user"
PARAMETER_TOKEN = SERVICE_KEY + ":api-token"
PARAMETER_JOB = SERVICE_KEY + ":job"
PARAMETER_TEMPLATE_JOB = SERVICE_KEY + ":template-job"


def _check_url(url: str | None) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(PARAMETER_URL, "jenkins-connection")
    # Relative paths are resolved against the base, keep it a directory
    return url if url.endswith("/") else url + "/"


@dataclass(frozen=True)
class ConnectionParameters:
    """Everything needed to talk to one Jenkins server and job."""

    url: str
    user: str = ""
    token: str = ""
    job: str | None = None
    template_job: str | None = None

    @classmethod
    def from_mapping(cls, parameters: Mapping[str, str]) -> ConnectionParameters:
        """Build the parameters from a flat key/value mapping.

        Errors raised by the mapping itself propagate unchanged.

        Raises:
            ValidationError: If the URL is not an absolute http(s) URL.
        """
        user = parameters.get(PARAMETER_USER) or ""
        token = parameters.get(PARAMETER_TOKEN) or ""
        url = _check_url(parameters.get(PARAMETER_URL))
        return cls(
            url=url,
            user=user,
            token=token,
            job=parameters.get(PARAMETER_JOB) or None,
            template_job=parameters.get(PARAMETER_TEMPLATE_JOB) or None,
        )

    @classmethod
    def from_env(cls, job: str | None = None) -> ConnectionParameters:
        """Create parameters from environment variables.

        Environment variables:
            JENKINS_URL: Jenkins server URL (required)
            JENKINS_USERNAME: Jenkins username (optional)
            JENKINS_API_TOKEN: Jenkins API token (optional)

        Raises:
            ValueError: If JENKINS_URL is not set.
        """
        url = os.environ.get("JENKINS_URL")
        if not url:
            raise ValueError(
                "JENKINS_URL environment variable is required. "
                "Please set it to your Jenkins server URL."
            )
        return cls(
            url=_check_url(url),
            user=os.environ.get("JENKINS_USERNAME", ""),
            token=os.environ.get("JENKINS_API_TOKEN", ""),
            job=job,
        )

    def require_job(self) -> str:
        """Return the job identifier, failing on the job parameter."""
        if not self.job:
            raise ValidationError(PARAMETER_JOB, "jenkins-job")
        return self.job

    def to_mapping(self) -> dict[str, str]:
        """Return the flat key/value form of these parameters."""
        mapping = {
            PARAMETER_URL: self.url,
            PARAMETER_USER: self.user,
            PARAMETER_TOKEN: self.token,
        }
        if self.job:
            mapping[PARAMETER_JOB] = self.job
        if self.template_job:
            mapping[PARAMETER_TEMPLATE_JOB] = self.template_job
        return mapping
