"""Shared fixtures: a routed fake Jenkins server and a temporary store."""

from __future__ import annotations

from pathlib import Path
from typing import Any, NamedTuple

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from jenkins_bridge.parameters import (
    PARAMETER_JOB,
    PARAMETER_TOKEN,
    PARAMETER_URL,
    PARAMETER_USER,
)
from jenkins_bridge.resource import JenkinsPluginResource
from jenkins_bridge.subscriptions import SubscriptionStore

FIXTURES = Path(__file__).parent / "fixtures"
BASE_URL = "http://localhost:9475/"
NODE = "service:build:jenkins:bpr"
JOB_QUERY_URL = (
    BASE_URL + "api/xml?depth=1&tree=jobs[displayName,name,color]"
    "&xpath=hudson/job[name='ligoj-bootstrap']&wrapper=hudson"
)


def load(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class Call(NamedTuple):
    method: str
    url: str
    data: Any
    headers: Any
    allow_redirects: bool


class FakeJenkins:
    """Stands in for ``requests.Session``: answers stubbed routes and
    records every request. Unknown routes answer 404."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[Call] = []
        self.auth = None
        self.closed = 0

    def close(self) -> None:
        self.closed += 1

    def __enter__(self) -> FakeJenkins:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def stub(
        self,
        method: str,
        path: str,
        status: int = 200,
        body: str = "",
        headers: dict[str, str] | None = None,
        error: Exception | None = None,
    ) -> None:
        url = path if path.startswith("http") else BASE_URL + path
        self.routes[(method, url)] = error or (status, body, headers or {})

    def request(
        self,
        method: str,
        url: str,
        data: Any = None,
        headers: Any = None,
        allow_redirects: bool = True,
        timeout: Any = None,
    ) -> requests.Response:
        self.calls.append(Call(method, url, data, headers, allow_redirects))
        route = self.routes.get((method, url), (404, "", {}))
        if isinstance(route, Exception):
            raise route
        status, body, response_headers = route
        response = requests.Response()
        response.status_code = status
        response._content = body.encode("utf-8")
        response.encoding = "utf-8"
        response.headers = CaseInsensitiveDict(response_headers)
        response.url = url
        return response

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def urls(self, method: str | None = None) -> list[str]:
        return [c.url for c in self.calls if method is None or c.method == method]


def add_login_access(jenkins: FakeJenkins) -> None:
    jenkins.stub("GET", "login")
    jenkins.stub("GET", "api/xml", body=load("jenkins-api-xml.xml"))


def add_admin_access(jenkins: FakeJenkins) -> None:
    jenkins.stub("GET", "computer/(master)/config.xml", body="<slave/>")
    jenkins.stub(
        "GET",
        "api/json?tree=numExecutors",
        body=load("jenkins-version.json"),
        headers={"x-jenkins": "1.574"},
    )


def add_job_access(jenkins: FakeJenkins, fixture: str = "jenkins-job-config.xml") -> None:
    jenkins.stub("GET", JOB_QUERY_URL, body=load(fixture))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def jenkins():
    return FakeJenkins()


@pytest.fixture
def node_parameters() -> dict[str, str]:
    return {
        PARAMETER_URL: BASE_URL,
        PARAMETER_USER: "junit",
        PARAMETER_TOKEN: "secret",
    }


@pytest.fixture
def store(tmp_path: Path, node_parameters):
    """A store holding the node and one subscription on ligoj-bootstrap."""
    store = SubscriptionStore(path=tmp_path / "parameters.json")
    store.put_node(NODE, node_parameters)
    return store


@pytest.fixture
def subscription(store) -> int:
    return store.add_subscription(NODE, {PARAMETER_JOB: "ligoj-bootstrap"})


@pytest.fixture
def resource(store, jenkins):
    return JenkinsPluginResource(store=store, session_factory=lambda: jenkins)
