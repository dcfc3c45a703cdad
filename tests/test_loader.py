# tests/test_loader.py
from pathlib import Path

import pytest

from conftest import make_node, subworkflow_node, write_repo
from syncflow.repository.dependencies import extract_dependencies, rewrite_subworkflow_refs
from syncflow.repository.loader import load_repository, load_workflow_file, name_from_filename


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("main.json", "Main"),
        ("user_login.json", "User Login"),
        ("send-email_v2.json", "Send-Email V2"),
        ("Already Named.json", "Already Named"),
    ],
)
def test_name_from_filename(filename, expected):
    assert name_from_filename(Path("workflows") / filename) == expected


def test_explicit_name_wins_over_filename(repo_dir):
    write_repo(repo_dir, {"some_file.json": {"name": "Billing Sync", "nodes": []}})
    rec = load_workflow_file(repo_dir / "some_file.json")
    assert rec.name == "Billing Sync"
    assert rec.key == "billing sync"


def test_missing_name_is_filled_in(repo_dir):
    write_repo(repo_dir, {"nightly_report.json": {"nodes": []}})
    rec = load_workflow_file(repo_dir / "nightly_report.json")
    assert rec.name == "Nightly Report"
    assert rec.workflow["name"] == "Nightly Report"


def test_load_repository_recurses_and_skips_bad_files(repo_dir):
    write_repo(repo_dir, {
        "a/good.json": {"name": "Good", "nodes": [make_node("Start", "n8n-nodes-base.manualTrigger")]},
        "a/b/deeper.json": {"name": "Deeper", "nodes": []},
        "broken.json": "{ not json",
        "no_nodes.json": {"name": "No Nodes", "connections": {}},
        "list.json": [1, 2, 3],
        "bad_nodes.json": {"name": "Bad Nodes", "nodes": "oops"},
        "notes.txt": "ignored",
    })

    records, issues = load_repository(repo_dir)

    assert sorted(r.name for r in records) == ["Deeper", "Good"]
    assert len(issues) == 4
    assert all(msg.startswith("[LOAD]") for msg in issues)
    assert any("no_nodes.json" in msg and "missing nodes" in msg for msg in issues)
    assert any("broken.json" in msg for msg in issues)


def test_duplicate_names_are_case_insensitive(repo_dir):
    write_repo(repo_dir, {
        "one.json": {"name": "Login", "nodes": []},
        "two.json": {"name": "LOGIN", "nodes": []},
    })
    records, issues = load_repository(repo_dir)
    assert [r.name for r in records] == ["Login"]
    assert len(issues) == 1 and "duplicate" in issues[0]


def test_yaml_definitions_when_enabled(repo_dir):
    write_repo(repo_dir, {
        "flow.yaml": "name: From Yaml\nnodes:\n  - name: Start\n    type: n8n-nodes-base.manualTrigger\n",
        "flow.json": {"name": "From Json", "nodes": []},
    })
    json_only, _ = load_repository(repo_dir)
    both, _ = load_repository(repo_dir, extensions=(".json", ".yaml"))
    assert [r.name for r in json_only] == ["From Json"]
    assert sorted(r.name for r in both) == ["From Json", "From Yaml"]


def test_dependencies_come_from_cached_result_name_only():
    wf = {
        "nodes": [
            subworkflow_node("Call Login", "Login"),
            subworkflow_node("Call Audit", "  Audit Trail "),
            # plain id reference: not visible
            make_node("Call By Id", "n8n-nodes-base.executeWorkflow", {"workflowId": "42"}),
            # cached name on a different node type: not a dependency
            make_node("Other", "n8n-nodes-base.set", {"workflowId": {"cachedResultName": "Nope"}}),
        ]
    }
    assert extract_dependencies(wf) == {"login", "audit trail"}


def test_loaded_record_carries_dependencies(scenario_repo):
    records, issues = load_repository(scenario_repo)
    by_name = {r.name: r for r in records}
    assert issues == []
    assert by_name["Main"].dependencies == {"login"}
    assert by_name["Login"].dependencies == set()


def test_rewrite_subworkflow_refs_is_pure():
    wf = {"nodes": [subworkflow_node("Call Login", "Login", value="old")]}
    wf["nodes"][0]["parameters"]["workflowId"]["cachedResultUrl"] = "/workflow/old"

    out, rewritten = rewrite_subworkflow_refs(wf, {"login": "17"})

    ref = out["nodes"][0]["parameters"]["workflowId"]
    assert ref["value"] == "17"
    assert ref["cachedResultUrl"] == "/workflow/17"
    assert rewritten == {"Call Login": "17"}
    assert wf["nodes"][0]["parameters"]["workflowId"]["value"] == "old"


def test_rewrite_leaves_unknown_targets_alone():
    wf = {"nodes": [subworkflow_node("Call Missing", "Missing", value="keep-me")]}
    out, rewritten = rewrite_subworkflow_refs(wf, {"login": "17"})
    assert out["nodes"][0]["parameters"]["workflowId"]["value"] == "keep-me"
    assert rewritten == {}
