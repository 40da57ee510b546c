"""Parsing of Jenkins API responses."""

from __future__ import annotations

import re
import unicodedata
import xml.etree.ElementTree as ET
from typing import Mapping

from jenkins_bridge.model import Job

VERSION_HEADER = "X-Jenkins"

_WAR_VERSION = re.compile(r"/war(?:-stable)?/([^/]+)/jenkins\.war$")


def _text(element: ET.Element, tag: str) -> str | None:
    value = element.findtext(tag)
    if value is None:
        return None
    return value.strip() or None


def _to_job(element: ET.Element) -> Job | None:
    job_id = _text(element, "name")
    if job_id is None:
        return None
    return Job.from_color(
        job_id,
        _text(element, "color"),
        name=_text(element, "displayName"),
        description=_text(element, "description"),
    )


def _root(xml: str) -> ET.Element | None:
    if not xml or not xml.strip():
        return None
    return ET.fromstring(xml)


def parse_jobs(xml: str) -> list[Job]:
    """Return every ``job`` entry of an ``api/xml`` document, in order.

    Both the minimal shape (``name`` and ``color``) and the full shape
    (adding ``displayName`` and ``description``) are accepted; missing
    values stay ``None``.
    """
    root = _root(xml)
    if root is None:
        return []
    elements = [root] if root.tag == "job" else root.findall("job")
    jobs = []
    for element in elements:
        job = _to_job(element)
        if job is not None:
            jobs.append(job)
    return jobs


def parse_job(xml: str, job_id: str) -> Job | None:
    """Return the job named ``job_id``, or ``None`` when it is absent."""
    for job in parse_jobs(xml):
        if job.id == job_id:
            return job
    return None


def parse_version(headers: Mapping[str, str]) -> str | None:
    """Read the Jenkins version advertised in the response headers."""
    for key, value in headers.items():
        if key.lower() == VERSION_HEADER.lower():
            return value.strip() or None
    return None


def parse_war_version(location: str | None) -> str | None:
    """Extract the version from a ``.../war/<version>/jenkins.war`` URL."""
    if not location:
        return None
    match = _WAR_VERSION.search(location)
    return match.group(1) if match else None


def normalize(text: str | None) -> str:
    """Lower-case and strip accents, for loose name matching."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower()


def matches(job: Job, criteria: str) -> bool:
    wanted = normalize(criteria)
    return any(
        wanted in normalize(value)
        for value in (job.id, job.name, job.description)
    )
