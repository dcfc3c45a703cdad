# tests/conftest.py
import copy
import json
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from syncflow.errors import ApiError

FIXTURES = Path(__file__).parent / "fixtures"


# ---------- Workflow builders ----------

def make_node(name: str, type_: str, parameters: Optional[dict] = None, **extra) -> Dict[str, Any]:
    node = {"name": name, "type": type_, "typeVersion": 1, "parameters": parameters or {}}
    node.update(extra)
    return node


def subworkflow_node(name: str, target: str, value: str = "") -> Dict[str, Any]:
    return make_node(
        name,
        "n8n-nodes-base.executeWorkflow",
        {
            "source": "database",
            "workflowId": {
                "__rl": True,
                "value": value,
                "mode": "list",
                "cachedResultName": target,
            },
        },
    )


def placeholder(name: str, ctype: str) -> Dict[str, Any]:
    return {"name": name, "_type": ctype, "_preserveInstance": True}


def write_repo(root: Path, files: Dict[str, Any]) -> Path:
    """files: relative path -> object (dumped as JSON) or raw string."""
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content, indent=2)
        p.write_text(text, encoding="utf-8")
    return root


# ---------- In-memory n8n ----------

class FakeN8n:
    """
    Stand-in for N8nClient. Stores full workflows by id, assigns ids to new
    workflows and nodes, and records every call.
    """

    api_version = "v1"

    def __init__(self, workflows: Optional[List[Dict[str, Any]]] = None):
        self.workflows: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, set] = {"create": set(), "update": set(), "get": set()}
        self.create_returns_no_id: set = set()
        self.activated: List[str] = []
        self._next = 100
        for wf in workflows or []:
            self._store(copy.deepcopy(wf))

    def _new_id(self) -> str:
        self._next += 1
        return str(self._next)

    def _store(self, wf: Dict[str, Any]) -> str:
        wid = wf.get("id") or self._new_id()
        wf["id"] = wid
        for node in wf.get("nodes") or []:
            node.setdefault("id", f"node-{self._new_id()}")
            node.setdefault("position", [0, 0])
        self.workflows[wid] = wf
        return wid

    def by_name(self, name: str) -> Optional[Dict[str, Any]]:
        for wf in self.workflows.values():
            if wf["name"].lower() == name.lower():
                return wf
        return None

    @property
    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("create", "update", "activate")]

    def list_workflows(self):
        self.calls.append(("list",))
        return [{"id": wid, "name": wf["name"], "active": False} for wid, wf in self.workflows.items()]

    def get_workflow(self, workflow_id):
        self.calls.append(("get", workflow_id))
        wf = self.workflows[workflow_id]
        if wf["name"] in self.fail_on["get"]:
            raise ApiError("GET", f"/api/v1/workflows/{workflow_id}", 500, body="boom")
        return copy.deepcopy(wf)

    def create_workflow(self, payload):
        self.calls.append(("create", copy.deepcopy(payload)))
        if payload["name"] in self.fail_on["create"]:
            raise ApiError("POST", "/api/v1/workflows", 400, body='{"message":"request/body must NOT have additional properties"}')
        if payload["name"] in self.create_returns_no_id:
            return None
        return self._store(copy.deepcopy(payload))

    def update_workflow(self, workflow_id, payload):
        self.calls.append(("update", workflow_id, copy.deepcopy(payload)))
        if payload["name"] in self.fail_on["update"]:
            raise ApiError("PUT", f"/api/v1/workflows/{workflow_id}", 400, body="bad")
        stored = copy.deepcopy(payload)
        stored["id"] = workflow_id
        self._store(stored)
        return stored

    def activate_workflow(self, workflow_id):
        self.calls.append(("activate", workflow_id))
        self.activated.append(workflow_id)
        return {"id": workflow_id, "active": True}


# ---------- Fake requests.Session ----------

class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, reason: str = "OK"):
        self.status_code = status_code
        self.reason = reason
        if body is None:
            self.text = ""
            self.headers = {}
        elif isinstance(body, str):
            self.text = body
            self.headers = {"content-type": "text/plain"}
        else:
            self.text = json.dumps(body)
            self.headers = {"content-type": "application/json; charset=utf-8"}
        self.content = self.text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    routes: (METHOD, path) -> FakeResponse, exception instance, or list of either
    (consumed in order). Unknown routes answer 404.
    """

    def __init__(self, routes: Optional[Dict[tuple, Any]] = None):
        self.routes = routes or {}
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        path = url.split("://", 1)[-1]
        path = path[path.index("/"):] if "/" in path else "/"
        self.calls.append({
            "method": method, "path": path, "headers": headers or {},
            "params": params, "json": json, "timeout": timeout,
        })
        answer = self.routes.get((method, path))
        if isinstance(answer, list):
            answer = answer.pop(0) if answer else None
        if answer is None:
            return FakeResponse(404, {"message": "not found"}, reason="Not Found")
        if isinstance(answer, Exception):
            raise answer
        return answer


# ---------- Fixtures ----------

@pytest.fixture
def repo_dir(tmp_path):
    root = tmp_path / "workflows"
    root.mkdir()
    return root


@pytest.fixture
def scenario_repo(tmp_path):
    """Copy of tests/fixtures/repo (Login + Main) that tests may modify."""
    dst = tmp_path / "repo"
    shutil.copytree(FIXTURES / "repo", dst)
    return dst
