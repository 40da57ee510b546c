"""Jenkins bridge MCP server: monitor and control subscribed Jenkins jobs."""

from __future__ import annotations

from typing import Any

import jenkins
from fastmcp import FastMCP

from jenkins_bridge.errors import ValidationError
from jenkins_bridge.parameters import (
    PARAMETER_TOKEN,
    PARAMETER_URL,
    PARAMETER_USER,
    ConnectionParameters,
)
from jenkins_bridge.resource import JenkinsPluginResource

mcp = FastMCP("Jenkins Bridge")


def get_resource() -> JenkinsPluginResource:
    """Return the job operations client backed by the default store."""
    return JenkinsPluginResource()


def _format_error(e: Exception) -> dict[str, Any]:
    """Format an exception into a consistent error response."""
    error: dict[str, Any] = {"error": True, "message": str(e)}
    if isinstance(e, ValidationError):
        error["parameter"] = e.parameter
        error["reason"] = e.reason
    return error


# ---------------------------------------------------------------------------
# Tool 1: validate_admin_access
# ---------------------------------------------------------------------------
@mcp.tool
def validate_admin_access(
    url: str | None = None,
    user: str | None = None,
    token: str | None = None,
    minimum_version: str | None = None,
) -> dict[str, Any]:
    """Check that a Jenkins URL and credentials carry administrative rights.

    Args:
        url: Jenkins server URL. Defaults to the JENKINS_URL environment
            variable, with JENKINS_USERNAME and JENKINS_API_TOKEN.
        user: Jenkins username.
        token: Jenkins API token.
        minimum_version: Lowest accepted Jenkins version, e.g. "2.300".

    Returns:
        A dict with the server version on success.
    """
    try:
        if url:
            parameters = {
                PARAMETER_URL: url,
                PARAMETER_USER: user or "",
                PARAMETER_TOKEN: token or "",
            }
        else:
            parameters = ConnectionParameters.from_env().to_mapping()
        version = get_resource().validate_admin_access(parameters, minimum_version)
        return {"success": True, "url": parameters[PARAMETER_URL], "version": version}
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 2: find_jobs
# ---------------------------------------------------------------------------
@mcp.tool
def find_jobs(node: str, criteria: str, templates: bool = False) -> dict[str, Any]:
    """List the jobs of a Jenkins node whose name contains *criteria*.

    Args:
        node: Identifier of the Jenkins node in the parameter store.
        criteria: Text searched in job ids, names and descriptions,
            ignoring case and accents.
        templates: Search the "Templates" view instead of all jobs.

    Returns:
        A dict with the matching jobs, in server order.
    """
    try:
        resource = get_resource()
        if templates:
            jobs = resource.find_all_template_by_name(node, criteria)
        else:
            jobs = resource.find_all_by_name(node, criteria)
        return {
            "success": True,
            "node": node,
            "job_count": len(jobs),
            "jobs": [job.to_dict() for job in jobs],
        }
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 3: get_job
# ---------------------------------------------------------------------------
@mcp.tool
def get_job(node: str, job_id: str) -> dict[str, Any]:
    """Get the status of one Jenkins job.

    Args:
        node: Identifier of the Jenkins node in the parameter store.
        job_id: Internal name of the job.

    Returns:
        A dict with the job status and whether it is building.
    """
    try:
        job = get_resource().find_by_id(node, job_id)
        return {"success": True, **job.to_dict()}
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 4: trigger_build
# ---------------------------------------------------------------------------
@mcp.tool
def trigger_build(
    subscription: int, parameters: dict[str, str] | None = None
) -> dict[str, Any]:
    """Trigger a build of the subscription's job.

    Args:
        subscription: Subscription identifier.
        parameters: Optional build parameters. Without them, jobs that
            require parameters are built with their defaults.

    Returns:
        A dict indicating whether the build was triggered.
    """
    try:
        get_resource().build(subscription, parameters)
        return {
            "success": True,
            "subscription": subscription,
            "message": f"Build of subscription {subscription} has been triggered.",
        }
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 5: create_job
# ---------------------------------------------------------------------------
@mcp.tool
def create_job(
    subscription: int, variables: dict[str, str] | None = None
) -> dict[str, Any]:
    """Create the subscription's job by cloning its template job.

    Args:
        subscription: Subscription identifier.
        variables: Values for ``${name}`` placeholders of the template
            configuration, e.g. an owner email. ``${jenkins_job}`` and
            ``${jenkins_template}`` are always the new job and template
            names and can't be overridden.

    Returns:
        A dict indicating whether the job was created.
    """
    try:
        get_resource().create(subscription, variables)
        return {
            "success": True,
            "subscription": subscription,
            "message": f"Job of subscription {subscription} has been created.",
        }
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 6: delete_job
# ---------------------------------------------------------------------------
@mcp.tool
def delete_job(subscription: int, remote_data: bool = False) -> dict[str, Any]:
    """Unlink the subscription's job, optionally deleting it on Jenkins.

    Args:
        subscription: Subscription identifier.
        remote_data: Also delete the job on the Jenkins server.

    Returns:
        A dict indicating whether the job was deleted.
    """
    try:
        get_resource().delete(subscription, remote_data)
        return {
            "success": True,
            "subscription": subscription,
            "remote_data": remote_data,
        }
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Tool 7: get_version
# ---------------------------------------------------------------------------
@mcp.tool
def get_version(subscription: int) -> dict[str, Any]:
    """Get the Jenkins version of the subscription's server, and the latest one.

    Args:
        subscription: Subscription identifier.

    Returns:
        A dict with the current and latest known versions.
    """
    try:
        resource = get_resource()
        return {
            "success": True,
            "subscription": subscription,
            "version": resource.get_version(subscription),
            "last_version": resource.get_last_version(),
        }
    except jenkins.JenkinsException as e:
        return _format_error(e)
    except KeyError as e:
        return _format_error(e)
    except ValueError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    mcp.run()
