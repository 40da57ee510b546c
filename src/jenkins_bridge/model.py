"""Value types returned by Jenkins operations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

# Jenkins appends this to the last build color while a build is running
BUILDING_SUFFIX = "_anime"


def to_status(color: str | None) -> tuple[str | None, bool]:
    """Split a Jenkins color token into ``(status, building)``.

    >>> to_status("yellow_anime")
    ('yellow', True)
    >>> to_status("disabled")
    ('disabled', False)
    """
    if not color:
        return None, False
    if color.endswith(BUILDING_SUFFIX):
        return color[: -len(BUILDING_SUFFIX)], True
    return color, False


@dataclass(frozen=True)
class Job:
    """A Jenkins job as seen by the management platform."""

    id: str
    name: str | None = None
    description: str | None = None
    status: str | None = None
    building: bool = False

    @classmethod
    def from_color(
        cls,
        id: str,
        color: str | None,
        name: str | None = None,
        description: str | None = None,
    ) -> Job:
        status, building = to_status(color)
        return cls(
            id=id,
            name=name,
            description=description,
            status=status,
            building=building,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "building": self.building,
        }


def _version_key(version: str) -> tuple[tuple[int, str], ...]:
    parts = []
    for segment in re.split(r"[.\-]", version):
        if segment.isdigit():
            parts.append((int(segment), ""))
        else:
            parts.append((-1, segment))
    return tuple(parts)


@dataclass(frozen=True)
class VersionInfo:
    """A Jenkins version string, e.g. ``1.574`` or ``2.426.1``."""

    version: str

    def at_least(self, minimum: str) -> bool:
        """Compare dotted segments numerically, ``1.10`` is above ``1.9``."""
        return _version_key(self.version) >= _version_key(minimum)

    def __str__(self) -> str:
        return self.version


@dataclass
class SubscriptionStatus:
    """Health of a subscription, with the resolved job attached."""

    up: bool
    data: dict[str, Any] = field(default_factory=dict)
