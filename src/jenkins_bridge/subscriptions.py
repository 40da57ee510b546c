"""File-backed store of node and subscription parameters.

A *node* holds the connection parameters of one Jenkins server (URL, user,
API token). A *subscription* links a project to a node and adds its own
parameters, typically the job and template job identifiers. Parameters of a
subscription are resolved by layering its own values over its node's.

The default location is ``~/.jenkins_bridge/parameters.json`` and can be
overridden with the ``JENKINS_BRIDGE_STORE_PATH`` environment variable.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any


def _default_store_path() -> Path:
    custom = os.environ.get("JENKINS_BRIDGE_STORE_PATH")
    if custom:
        return Path(custom)
    return Path.home() / ".jenkins_bridge" / "parameters.json"


class SubscriptionStore:
    """Nodes and subscriptions kept in one JSON document, guarded by a lock.

    A missing file is an empty store. A file that exists but does not hold
    a JSON object raises ``ValueError`` and is never overwritten.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _default_store_path()
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"nodes": {}, "subscriptions": {}}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupted parameter store {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(
                f"Corrupted parameter store {self._path}: expected an object"
            )
        data.setdefault("nodes", {})
        data.setdefault("subscriptions", {})
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self._path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    def put_node(self, node: str, parameters: dict[str, str]) -> None:
        """Create or replace the parameters of *node*."""
        with self._lock:
            data = self._read()
            data["nodes"][node] = dict(parameters)
            self._write(data)

    def add_subscription(self, node: str, parameters: dict[str, str]) -> int:
        """Register a subscription on *node* and return its identifier."""
        with self._lock:
            data = self._read()
            if node not in data["nodes"]:
                raise KeyError(f"node[{node}] does not exist")
            subscriptions = data["subscriptions"]
            subscription = max(map(int, subscriptions), default=0) + 1
            subscriptions[str(subscription)] = {
                "node": node,
                "parameters": dict(parameters),
            }
            self._write(data)
        return subscription

    def remove_subscription(self, subscription: int) -> None:
        with self._lock:
            data = self._read()
            data["subscriptions"].pop(str(subscription), None)
            self._write(data)

    def get_node_parameters(self, node: str) -> dict[str, str]:
        """Return the parameters of *node*.

        Raises:
            KeyError: If the node is unknown.
        """
        with self._lock:
            nodes = self._read()["nodes"]
        if node not in nodes:
            raise KeyError(f"node[{node}] does not exist")
        return dict(nodes[node])

    def get_subscription_parameters(self, subscription: int) -> dict[str, str]:
        """Return the node parameters overlaid with the subscription's own.

        Raises:
            KeyError: If the subscription is unknown.
        """
        with self._lock:
            data = self._read()
        entry = data["subscriptions"].get(str(subscription))
        if entry is None:
            raise KeyError(f"subscription[{subscription}] does not exist")
        return {**data["nodes"].get(entry["node"], {}), **entry["parameters"]}


_store: SubscriptionStore | None = None


def get_store() -> SubscriptionStore:
    """Return the process-wide store, created on first use."""
    global _store
    if _store is None:
        _store = SubscriptionStore()
    return _store
