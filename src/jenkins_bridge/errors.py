"""Error taxonomy for Jenkins operations.

Both families derive from :class:`jenkins.JenkinsException` so callers can
handle them exactly like failures raised by the python-jenkins client.
"""

from __future__ import annotations

import jenkins


class ValidationError(jenkins.JenkinsException):
    """A user-correctable input failure attached to one parameter."""

    def __init__(self, parameter: str, reason: str) -> None:
        super().__init__(f"{parameter}: {reason}")
        self.parameter = parameter
        self.reason = reason


class BusinessError(jenkins.JenkinsException):
    """An operation failed against an otherwise valid configuration."""

    def __init__(self, message: str, *args: object) -> None:
        details = ", ".join(str(a) for a in args)
        super().__init__(f"{message} ({details})" if details else message)
        self.message = message
        self.params = args
