# syncflow/orchestrator/sync.py
"""
Sync orchestrator.

    IDLE -> LOADING -> RESOLVING -> SNAPSHOTTING -> APPLYING -> DONE

Anything that goes wrong before APPLYING is fatal and raised to the caller;
nothing has been written at that point. Inside APPLYING a failure only costs
the record being processed: it is logged, counted as errored, and the loop moves on.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from syncflow.config import SyncConfig
from syncflow.errors import ConfigError, EmptyRepositoryError, MissingIdentifierError, SyncError
from syncflow.planning.resolver import resolve_order
from syncflow.reconcile.detector import ADDED, MODIFIED, REMOVED, ChangeReport, detect_changes
from syncflow.reconcile.merger import merge_workflows, prepare_for_create
from syncflow.remote.directory import NameToIdMap, RemoteDirectory
from syncflow.remote.surfaces import extract_id
from syncflow.repository.dependencies import rewrite_subworkflow_refs
from syncflow.repository.loader import DEFAULT_EXTENSIONS, WorkflowRecord, load_repository
from syncflow.utils.logger import get_logger

log = get_logger("sync")

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
ERRORED = "errored"
ACTIONS = (CREATED, UPDATED, SKIPPED, ERRORED)


class SyncState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESOLVING = "resolving"
    SNAPSHOTTING = "snapshotting"
    APPLYING = "applying"
    DONE = "done"


@dataclass
class RecordOutcome:
    name: str
    action: str
    workflow_id: Optional[str] = None
    detail: str = ""
    dry_run: bool = False
    changes: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "action": self.action,
            "id": self.workflow_id,
            "detail": self.detail,
            "dry_run": self.dry_run,
            "changes": self.changes,
        }


@dataclass
class SyncReport:
    outcomes: List[RecordOutcome] = field(default_factory=list)
    load_issues: List[str] = field(default_factory=list)
    cycle_warnings: List[str] = field(default_factory=list)
    api_version: Optional[str] = None
    dry_run: bool = False

    def count(self, action: str) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def counts(self) -> Dict[str, int]:
        return {a: self.count(a) for a in ACTIONS}

    @property
    def ok(self) -> bool:
        """Skips are fine; any errored record is not."""
        return self.count(ERRORED) == 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "dry_run": self.dry_run,
            "api_version": self.api_version,
            "counts": self.counts,
            "outcomes": [o.as_dict() for o in self.outcomes],
            "load_issues": self.load_issues,
            "cycle_warnings": self.cycle_warnings,
        }


def log_change_details(changes: ChangeReport) -> None:
    for kind in (ADDED, REMOVED, MODIFIED):
        for node in changes.nodes_of(kind):
            log.info(f"      {kind}: {node}")
    if changes.connections:
        log.info("   Connection changes detected")
    if changes.settings:
        log.info("   Settings changes detected")


class SyncRunner:
    """
    Drives one reconciliation pass. `client` needs list_workflows, get_workflow,
    create_workflow (returning the new id), update_workflow and activate_workflow;
    see syncflow.remote.client.N8nClient.
    """

    def __init__(self, client: Any, config: SyncConfig, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> None:
        self.client = client
        self.config = config
        self.extensions = tuple(extensions)
        self.state = SyncState.IDLE

    # ---------- Phases ----------

    def load(self) -> tuple:
        self.state = SyncState.LOADING
        root = self.config.workflows_dir
        if not root.is_dir():
            raise ConfigError(f"Workflows directory not found: {root}")
        records, issues = load_repository(root, self.extensions)
        if not records:
            raise EmptyRepositoryError(f"No valid workflow definitions found under {root}")
        return records, issues

    def snapshot(self) -> RemoteDirectory:
        self.state = SyncState.SNAPSHOTTING
        directory = RemoteDirectory.from_summaries(self.client.list_workflows())
        log.info(f"Found {len(directory)} existing workflows in instance")
        return directory

    def run(self) -> SyncReport:
        mode = " (DRY RUN)" if self.config.dry_run else ""
        log.info(f"Starting workflow synchronization...{mode}")

        records, issues = self.load()

        self.state = SyncState.RESOLVING
        ordered, warnings = resolve_order(records)
        log.info(f"Apply order: {', '.join(r.name for r in ordered)}")

        directory = self.snapshot()
        ids = directory.name_to_id()

        report = SyncReport(
            load_issues=issues,
            cycle_warnings=warnings,
            api_version=getattr(self.client, "api_version", None),
            dry_run=self.config.dry_run,
        )

        self.state = SyncState.APPLYING
        for rec in ordered:
            try:
                outcome = self.apply_record(rec, directory, ids)
            except SyncError as e:
                log.error(f"Failed to process {rec.name}: {e}")
                outcome = RecordOutcome(rec.name, ERRORED, detail=str(e), dry_run=self.config.dry_run)
            except Exception as e:
                log.exception(f"Unexpected failure while processing {rec.name}")
                outcome = RecordOutcome(rec.name, ERRORED, detail=f"{type(e).__name__}: {e}", dry_run=self.config.dry_run)
            report.outcomes.append(outcome)

        self.state = SyncState.DONE
        return report

    # ---------- Per record ----------

    def apply_record(self, rec: WorkflowRecord, directory: RemoteDirectory, ids: NameToIdMap) -> RecordOutcome:
        workflow, rewritten = rewrite_subworkflow_refs(rec.workflow, ids)
        for node_name, target_id in rewritten.items():
            log.debug(f"{rec.name}: sub-workflow reference in '{node_name}' -> {target_id}")

        existing = directory.lookup(rec.name)
        if existing is None:
            return self._create(rec, workflow, ids)
        return self._update(rec, workflow, existing)

    def _create(self, rec: WorkflowRecord, workflow: Dict[str, Any], ids: NameToIdMap) -> RecordOutcome:
        log.info(f"Creating new workflow: {rec.name}")
        if self.config.dry_run:
            log.info("   DRY RUN: Would create new workflow")
            return RecordOutcome(rec.name, CREATED, detail="new workflow", dry_run=True)

        new_id = self.client.create_workflow(prepare_for_create(workflow))
        if not new_id:
            raise MissingIdentifierError(f"No ID returned from workflow creation of '{rec.name}'")
        ids[rec.name] = new_id
        log.info(f"Created: {rec.name} (ID: {new_id})")
        self._maybe_activate(rec.name, new_id)
        return RecordOutcome(rec.name, CREATED, workflow_id=new_id, detail="new workflow")

    def _update(self, rec: WorkflowRecord, workflow: Dict[str, Any], existing: Dict[str, Any]) -> RecordOutcome:
        wid = extract_id(existing)
        if not wid:
            raise MissingIdentifierError(f"Cannot determine ID for existing workflow: {rec.name}")

        # list entries are summaries; nodes and connections only come with the full record
        full = self.client.get_workflow(wid)
        changes = detect_changes(workflow, full)

        if not changes.has_changes and not self.config.force_update:
            log.info(f"Skipped: {rec.name} (no changes detected)")
            return RecordOutcome(
                rec.name, SKIPPED, workflow_id=wid, detail=changes.summary,
                dry_run=self.config.dry_run, changes=changes.as_dict(),
            )

        merged = merge_workflows(workflow, full)
        summary = changes.summary if changes.has_changes else "forced update"
        log.info(f"Processing: {rec.name}")
        log.info(f"   Changes: {summary}")

        if self.config.dry_run:
            log.info("   DRY RUN: Would update workflow")
            log_change_details(changes)
            return RecordOutcome(
                rec.name, UPDATED, workflow_id=wid, detail=summary,
                dry_run=True, changes=changes.as_dict(),
            )

        self.client.update_workflow(wid, merged)
        log.info(f"Updated: {rec.name} (ID: {wid})")
        self._maybe_activate(rec.name, wid)
        return RecordOutcome(rec.name, UPDATED, workflow_id=wid, detail=summary, changes=changes.as_dict())

    def _maybe_activate(self, name: str, workflow_id: str) -> None:
        if not self.config.activate:
            return
        self.client.activate_workflow(workflow_id)
        log.info(f"Activated workflow: {name}")


def diff_repository(client: Any, records: Iterable[WorkflowRecord]) -> List[Dict[str, Any]]:
    """
    Read-only comparison of every repository workflow that already exists remotely.
    Sub-workflow references are rewritten first, exactly as a sync would.
    """
    directory = RemoteDirectory.from_summaries(client.list_workflows())
    ids = directory.name_to_id()
    rows: List[Dict[str, Any]] = []
    for rec in records:
        wid = directory.id_of(rec.name)
        if wid is None:
            rows.append({"name": rec.name, "id": None, "status": "new", "summary": "not on server"})
            continue
        workflow, _ = rewrite_subworkflow_refs(rec.workflow, ids)
        changes = detect_changes(workflow, client.get_workflow(wid))
        rows.append({
            "name": rec.name,
            "id": wid,
            "status": "changed" if changes.has_changes else "unchanged",
            "summary": changes.summary,
            "changes": changes.as_dict(),
        })
    return rows
