"""Jenkins job operations for the management platform.

Every operation resolves its connection parameters, then runs a short
sequence of requests against the Jenkins server, each depending on the
outcome of the previous one.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from string import Template
from typing import Callable, Mapping
from urllib.parse import quote, urlencode

import requests

from jenkins_bridge import validator
from jenkins_bridge.errors import BusinessError, ValidationError
from jenkins_bridge.model import Job, SubscriptionStatus
from jenkins_bridge.parameters import (
    PARAMETER_JOB,
    PARAMETER_TEMPLATE_JOB,
    SERVICE_KEY,
    ConnectionParameters,
)
from jenkins_bridge.parser import matches, parse_jobs, parse_war_version
from jenkins_bridge.subscriptions import SubscriptionStore, get_store
from jenkins_bridge.transport import XML_HEADERS, JenkinsTransport, quote_name

logger = logging.getLogger(__name__)

LATEST_WAR_URL = "https://updates.jenkins.io/latest/jenkins.war"
JOBS_PATH = "api/xml?tree=jobs[name,displayName,description,color]"
TEMPLATES_VIEW = "view/Templates/"

# doDelete answers with a redirect to the parent view
DELETE_STATUSES = frozenset({200, 204, 302, 303})

# Set by create(), caller variables can't override them
JOB_VARIABLE = "jenkins_job"
TEMPLATE_VARIABLE = "jenkins_template"


class ConfigTemplate(Template):
    """Only ``${name}`` placeholders; ``$VAR`` and ``$$`` in build scripts stay."""

    pattern = r"""
    \$(?:
      (?P<escaped>(?!))                |
      (?P<named>(?!))                  |
      {(?P<braced>[_a-z][_a-z0-9]*)}   |
      (?P<invalid>)
    )
    """


def render_config(config: str, variables: Mapping[str, str]) -> str:
    """Turn a template job configuration into the new job's one."""
    config = config.replace(
        "<disabled>true</disabled>", "<disabled>false</disabled>", 1
    )
    return ConfigTemplate(config).safe_substitute(variables)


class JenkinsPluginResource:
    """Monitor and control the Jenkins jobs of subscriptions."""

    def __init__(
        self,
        store: SubscriptionStore | None = None,
        session_factory: Callable[[], requests.Session] | None = None,
    ) -> None:
        self._store = store
        self._session_factory = session_factory or requests.Session

    @property
    def store(self) -> SubscriptionStore:
        return self._store or get_store()

    def get_key(self) -> str:
        return SERVICE_KEY

    def _transport(self, params: ConnectionParameters) -> JenkinsTransport:
        return JenkinsTransport(params, session=self._session_factory())

    def _subscription_parameters(self, subscription: int) -> ConnectionParameters:
        return ConnectionParameters.from_mapping(
            self.store.get_subscription_parameters(subscription)
        )

    # ------------------------------------------------------------------
    # Validation and status
    # ------------------------------------------------------------------
    def validate_admin_access(
        self,
        parameters: Mapping[str, str],
        minimum_version: str | None = None,
    ) -> str | None:
        params = ConnectionParameters.from_mapping(parameters)
        with self._transport(params) as transport:
            return validator.validate_admin_access(params, transport, minimum_version)

    def validate_job(self, parameters: Mapping[str, str]) -> Job:
        params = ConnectionParameters.from_mapping(parameters)
        with self._transport(params) as transport:
            return validator.validate_job(params, transport)

    def check_status(self, parameters: Mapping[str, str]) -> bool:
        # Any failure raises, so reaching the end means the node is up
        self.validate_admin_access(parameters)
        return True

    def check_subscription_status(
        self, parameters: Mapping[str, str]
    ) -> SubscriptionStatus:
        job = self.validate_job(parameters)
        return SubscriptionStatus(up=True, data={"job": job})

    def link(self, subscription: int) -> Job:
        """Attach an existing job: only validates that it exists."""
        return self.validate_job(self.store.get_subscription_parameters(subscription))

    def get_version(self, subscription: int) -> str | None:
        params = self._subscription_parameters(subscription)
        with self._transport(params) as transport:
            return validator.get_version(transport)

    def get_last_version(self, url: str = LATEST_WAR_URL) -> str | None:
        """Return the latest released Jenkins version, ``None`` if unknown.

        The update site redirects the "latest" war to its versioned location;
        the version is read from that redirect without following it.
        """
        with self._session_factory() as session:
            try:
                response = session.get(url, allow_redirects=False, timeout=30)
            except requests.RequestException as e:
                logger.warning("Unable to fetch the latest version from %s: %s", url, e)
                return None
        return parse_war_version(response.headers.get("Location"))

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def _find_all(self, node: str, criteria: str, view: str = "") -> list[Job]:
        params = ConnectionParameters.from_mapping(self.store.get_node_parameters(node))
        with self._transport(params) as transport:
            result = transport.get(view + JOBS_PATH)
        if result is None or not result.ok:
            # Discovery degrades to nothing, typically on 401/403
            logger.warning(
                "Listing jobs of %s failed with %s",
                node,
                result.status if result is not None else "no response",
            )
            return []
        try:
            jobs = parse_jobs(result.body)
        except ET.ParseError as e:
            logger.warning("Unreadable job list of %s: %s", node, e)
            return []
        return [job for job in jobs if matches(job, criteria)]

    def find_all_by_name(self, node: str, criteria: str) -> list[Job]:
        """Return the jobs of *node* whose id, name or description match."""
        return self._find_all(node, criteria)

    def find_all_template_by_name(self, node: str, criteria: str) -> list[Job]:
        """Same as :meth:`find_all_by_name`, within the "Templates" view."""
        return self._find_all(node, criteria, TEMPLATES_VIEW)

    def find_by_id(self, node: str, job_id: str) -> Job:
        params = ConnectionParameters.from_mapping(self.store.get_node_parameters(node))
        with self._transport(params) as transport:
            job = validator.find_job(transport, job_id)
        if job is None:
            raise ValidationError(PARAMETER_JOB, "jenkins-job")
        return job

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------
    def build(self, subscription: int, parameters: Mapping[str, str] | None = None) -> None:
        self.build_from_parameters(
            self.store.get_subscription_parameters(subscription), parameters
        )

    def build_from_parameters(
        self,
        mapping: Mapping[str, str],
        parameters: Mapping[str, str] | None = None,
    ) -> None:
        """Trigger a build of the configured job.

        A job declaring parameters rejects ``build`` with a server error, in
        which case the build is requested once more through
        ``buildWithParameters`` so that the defaults apply.

        Raises:
            BusinessError: If the build could not be triggered.
        """
        params = ConnectionParameters.from_mapping(mapping)
        job = params.require_job()
        path = f"job/{quote_name(job)}/"
        with self._transport(params) as transport:
            if parameters:
                result = transport.post(path + "buildWithParameters", data=dict(parameters))
            else:
                result = transport.post(path + "build")
                if result is not None and result.server_error:
                    logger.info("Job %s requires parameters, retrying with defaults", job)
                    result = transport.post(path + "buildWithParameters")
        if result is None or not result.ok:
            raise BusinessError("jenkins-build", job)
        logger.info("Build of %s triggered on %s", job, params.url)

    def create(
        self, subscription: int, variables: Mapping[str, str] | None = None
    ) -> None:
        """Create the subscription's job from its template job.

        ``${jenkins_job}`` and ``${jenkins_template}`` in the template
        configuration are replaced by the new job and template names, other
        ``${name}`` placeholders by *variables*.

        Raises:
            BusinessError: If the template can't be read or the job created.
        """
        params = self._subscription_parameters(subscription)
        job = params.require_job()
        template = params.template_job
        if not template:
            raise ValidationError(PARAMETER_TEMPLATE_JOB, "jenkins-job")

        context = dict(variables or {})
        context.update({JOB_VARIABLE: job, TEMPLATE_VARIABLE: template})
        with self._transport(params) as transport:
            config = transport.get_body(f"job/{quote_name(template)}/config.xml")
            if config is None:
                raise BusinessError("jenkins-template", template)
            result = transport.post(
                "createItem?" + urlencode({"name": job}, quote_via=quote),
                data=render_config(config, context).encode("utf-8"),
                headers=XML_HEADERS,
            )
        if result is None or not result.ok:
            raise BusinessError("jenkins-create", job)
        logger.info("Job %s created from template %s", job, template)

    def delete(self, subscription: int, remote_data: bool) -> None:
        """Unlink the subscription's job, deleting it on Jenkins if asked.

        Raises:
            BusinessError: If the remote deletion was refused.
        """
        if not remote_data:
            return
        params = self._subscription_parameters(subscription)
        job = params.require_job()
        with self._transport(params) as transport:
            result = transport.post(f"job/{quote_name(job)}/doDelete")
        if result is None or result.status not in DELETE_STATUSES:
            raise BusinessError("jenkins-delete", job)
        logger.info("Job %s deleted from %s", job, params.url)
