"""Credential, access and job validation against a Jenkins server."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import NamedTuple
from urllib.parse import quote

from jenkins_bridge.errors import ValidationError
from jenkins_bridge.model import Job, VersionInfo
from jenkins_bridge.parameters import (
    PARAMETER_JOB,
    PARAMETER_URL,
    PARAMETER_USER,
    ConnectionParameters,
)
from jenkins_bridge.parser import parse_job, parse_version
from jenkins_bridge.transport import JenkinsTransport

logger = logging.getLogger(__name__)

VERSION_PATH = "api/json?tree=numExecutors"
JOB_QUERY = (
    "api/xml?depth=1&tree=jobs[displayName,name,color]"
    "&xpath=hudson/job[name={job}]&wrapper=hudson"
)


class Probe(NamedTuple):
    path: str
    parameter: str
    reason: str


# Each probe checks a narrower capability than the previous one:
# reachability, authentication, then administrative rights.
ADMIN_PROBES = (
    Probe("login", PARAMETER_URL, "jenkins-connection"),
    Probe("api/xml", PARAMETER_USER, "jenkins-login"),
    Probe("computer/(master)/config.xml", PARAMETER_USER, "jenkins-rights"),
)


def xpath_literal(value: str) -> str:
    """Return *value* as an XPath 1.0 string literal.

    XPath has no escape sequence, so a value holding both quote kinds is
    split into a ``concat()`` of single and double quoted parts.
    """
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = ", \"'\", ".join(f"'{part}'" for part in value.split("'"))
    return f"concat({parts})"


def job_query(job_id: str) -> str:
    return JOB_QUERY.format(job=quote(xpath_literal(job_id), safe="'(),"))


def get_version(transport: JenkinsTransport) -> str | None:
    """Return the version header of the executor count API, if any."""
    result = transport.get(VERSION_PATH)
    if result is None or not result.ok:
        return None
    return parse_version(result.headers)


def validate_admin_access(
    params: ConnectionParameters,
    transport: JenkinsTransport | None = None,
    minimum_version: str | None = None,
) -> str | None:
    """Check the URL, the credentials and the administrative rights.

    Probes run in order and stop at the first failure, which is reported on
    the parameter it points at.

    Returns:
        The server version, as advertised in the ``X-Jenkins`` header.

    Raises:
        ValidationError: On the first failing probe.
    """
    if transport is None:
        with JenkinsTransport(params) as transport:
            return validate_admin_access(params, transport, minimum_version)

    for probe in ADMIN_PROBES:
        result = transport.get(probe.path)
        if result is None or not result.ok:
            logger.warning(
                "Probe %s on %s failed with %s",
                probe.path,
                params.url,
                result.status if result is not None else "no response",
            )
            raise ValidationError(probe.parameter, probe.reason)

    version = get_version(transport)
    if minimum_version and not (
        version and VersionInfo(version).at_least(minimum_version)
    ):
        raise ValidationError(PARAMETER_URL, "jenkins-version")
    logger.debug("Admin access granted on %s, version %s", params.url, version)
    return version


def find_job(transport: JenkinsTransport, job_id: str) -> Job | None:
    """Query the status of one job, ``None`` when the server lacks it."""
    result = transport.get(job_query(job_id))
    if result is None or not result.ok:
        return None
    try:
        return parse_job(result.body, job_id)
    except ET.ParseError as e:
        # Login pages of some security realms answer 200 with HTML
        logger.warning("Unreadable status of job %s: %s", job_id, e)
        return None


def validate_job(
    params: ConnectionParameters,
    transport: JenkinsTransport | None = None,
) -> Job:
    """Return the status of the configured job.

    Raises:
        ValidationError: When the job does not exist.
    """
    job_id = params.require_job()
    if transport is None:
        with JenkinsTransport(params) as transport:
            job = find_job(transport, job_id)
    else:
        job = find_job(transport, job_id)
    if job is None:
        raise ValidationError(PARAMETER_JOB, "jenkins-job")
    return job
