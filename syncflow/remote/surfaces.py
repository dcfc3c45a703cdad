# syncflow/remote/surfaces.py
"""
The two API surfaces an n8n instance may expose.

- PublicApiSurface: /api/v1, paginated list (limit + nextCursor), bare objects.
- LegacyRestSurface: /rest, the editor's internal API, unpaginated, {"data": ...} envelope.

Both answer the same five operations; the client picks one per run.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from syncflow.errors import TransportError
from syncflow.remote.transport import HttpTransport
from syncflow.utils.logger import get_logger

log = get_logger("surface")

PAGE_LIMIT = 250

# Fields the public API accepts on PUT; anything else is rejected with 400.
PUBLIC_UPDATE_FIELDS = ("name", "nodes", "connections", "settings", "staticData")


def unwrap(data: Any) -> Any:
    """Strip a {"data": ...} envelope if present."""
    if isinstance(data, dict) and isinstance(data.get("data"), (dict, list)):
        return data["data"]
    return data


def unwrap_list(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("data", "workflows"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


def extract_id(obj: Any) -> Optional[str]:
    """Workflow id from a record or response body; None when absent."""
    if not isinstance(obj, dict):
        return None
    for key in ("id", "_id", "workflowId"):
        if obj.get(key) not in (None, ""):
            return str(obj[key])
    inner = obj.get("data")
    if isinstance(inner, dict) and inner.get("id") not in (None, ""):
        return str(inner["id"])
    return None


class ApiSurface(ABC):
    name: str = ""
    prefix: str = ""

    def __init__(self, http: HttpTransport) -> None:
        self.http = http

    def workflow_path(self, workflow_id: Optional[str] = None) -> str:
        base = f"{self.prefix}/workflows"
        return base if workflow_id is None else f"{base}/{workflow_id}"

    @abstractmethod
    def list_workflows(self) -> List[Dict[str, Any]]:
        ...

    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return unwrap(self.http.request("GET", self.workflow_path(workflow_id)))

    def create_workflow(self, payload: Dict[str, Any]) -> Any:
        return self.http.request("POST", self.workflow_path(), body=payload)

    @abstractmethod
    def update_workflow(self, workflow_id: str, payload: Dict[str, Any]) -> Any:
        ...

    @abstractmethod
    def activate_workflow(self, workflow_id: str) -> Any:
        ...


class PublicApiSurface(ApiSurface):
    name = "v1"
    prefix = "/api/v1"

    def list_workflows(self) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {"limit": PAGE_LIMIT}
        seen_cursors = set()
        while True:
            data = self.http.request("GET", self.workflow_path(), params=params)
            items.extend(unwrap_list(data))
            cursor = data.get("nextCursor") if isinstance(data, dict) else None
            if not cursor or cursor in seen_cursors:
                return items
            seen_cursors.add(cursor)
            params = {"limit": PAGE_LIMIT, "cursor": cursor}

    def update_workflow(self, workflow_id: str, payload: Dict[str, Any]) -> Any:
        body = {k: payload[k] for k in PUBLIC_UPDATE_FIELDS if k in payload}
        return self.http.request("PUT", self.workflow_path(workflow_id), body=body)

    def activate_workflow(self, workflow_id: str) -> Any:
        return self.http.request("POST", f"{self.workflow_path(workflow_id)}/activate", body={})


class LegacyRestSurface(ApiSurface):
    name = "rest"
    prefix = "/rest"

    def list_workflows(self) -> List[Dict[str, Any]]:
        return unwrap_list(self.http.request("GET", self.workflow_path()))

    def update_workflow(self, workflow_id: str, payload: Dict[str, Any]) -> Any:
        # older editor APIs only know PATCH
        try:
            return self.http.request("PUT", self.workflow_path(workflow_id), body=payload)
        except TransportError as e:
            log.debug(f"PUT {self.workflow_path(workflow_id)} failed ({e}); retrying as PATCH")
            return self.http.request("PATCH", self.workflow_path(workflow_id), body=payload)

    def activate_workflow(self, workflow_id: str) -> Any:
        return self.http.request("PATCH", self.workflow_path(workflow_id), body={"active": True})


SURFACES = (PublicApiSurface, LegacyRestSurface)
