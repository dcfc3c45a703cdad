#!/usr/bin/env python3
# syncflow/cli.py

import logging
from pathlib import Path
from typing import Optional

import typer

from syncflow.config import load_config
from syncflow.errors import SyncError
from syncflow.orchestrator.sync import ERRORED, SyncRunner, diff_repository
from syncflow.planning.resolver import describe_order
from syncflow.remote.client import N8nClient
from syncflow.repository.loader import load_repository
from syncflow.utils.io import write_json
from syncflow.utils.logger import init_logger

app = typer.Typer(help="syncflow CLI - Reconcile a repository of n8n workflows with a running instance")

EXIT_OK = 0
EXIT_RECORD_ERRORS = 1
EXIT_FATAL = 2


def _setup_logging(verbose: bool, log_dir: Optional[Path]) -> None:
    init_logger(level=logging.DEBUG if verbose else None, log_dir=log_dir)


@app.command()
def sync(
    base_url: Optional[str] = typer.Option(None, "--base-url", help="n8n base URL (env: N8N_BASE_URL)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="n8n API key (env: N8N_API_KEY)"),
    workflows_dir: Optional[Path] = typer.Option(None, "--workflows-dir", "-d", help="Repository root (env: WORKFLOWS_DIR)"),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--apply", help="Only log intended actions (env: DRY_RUN)"),
    force: Optional[bool] = typer.Option(None, "--force/--no-force", help="Update even when no change is detected (env: FORCE_UPDATE)"),
    activate: Optional[bool] = typer.Option(None, "--activate/--no-activate", help="Activate workflows after writing them (env: ACTIVATE)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="HTTP timeout in seconds (env: HTTP_TIMEOUT)"),
    report: Optional[Path] = typer.Option(None, "--report", help="Write a JSON report to this path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug info"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Also write a rotating log file here"),
):
    """
    Create or update every repository workflow on the instance, in dependency order.
    Exit status: 0 clean, 1 some workflows failed, 2 the run could not start.
    """
    _setup_logging(verbose, log_dir)
    try:
        cfg = load_config(
            base_url=base_url,
            api_key=api_key,
            workflows_dir=workflows_dir,
            dry_run=dry_run,
            force_update=force,
            activate=activate,
            timeout=timeout,
        )
        cfg.validate()
        client = N8nClient(cfg.base_url, cfg.api_key, timeout=cfg.timeout)
        result = SyncRunner(client, cfg).run()
    except SyncError as e:
        print(f"[fatal] {e}")
        raise typer.Exit(code=EXIT_FATAL)

    for o in result.outcomes:
        suffix = f" (ID: {o.workflow_id})" if o.workflow_id else ""
        print(f"[{o.action}] {o.name}{suffix} - {o.detail}")

    title = "DRY RUN SUMMARY" if result.dry_run else "SYNCHRONIZATION COMPLETED"
    print(f"\n{title}")
    counts = result.counts
    print(f"   Created: {counts['created']}")
    print(f"   Updated: {counts['updated']}")
    print(f"   Skipped: {counts['skipped']}")
    if counts[ERRORED]:
        print(f"   Errors:  {counts[ERRORED]}")
    if result.load_issues:
        print(f"   Skipped files: {len(result.load_issues)}")
    if result.cycle_warnings:
        print(f"   Cycle warnings: {len(result.cycle_warnings)}")
    if result.dry_run and (counts["created"] or counts["updated"]):
        print("\nRun without --dry-run to apply these changes")

    if report is not None:
        write_json(report, result.as_dict())
        print(f"[ok] wrote report to {report}")

    if not result.ok:
        raise typer.Exit(code=EXIT_RECORD_ERRORS)


@app.command()
def order(
    workflows_dir: Path = typer.Option(Path("workflows"), "--workflows-dir", "-d", exists=True, file_okay=False, help="Repository root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug info"),
):
    """
    Print the apply order of the repository workflows (no network access).
    """
    _setup_logging(verbose, None)
    records, issues = load_repository(workflows_dir)
    plan = describe_order(records)

    for i, name in enumerate(plan["order"], start=1):
        deps = plan["dependencies"].get(name) or []
        dep_str = f"  <- {', '.join(deps)}" if deps else ""
        print(f"{i:3d}. {name}{dep_str}")

    if plan["external"]:
        print("Expected to exist on the instance already:")
        for name, deps in plan["external"].items():
            print(f"- {name}: {', '.join(deps)}")

    found = issues + plan["warnings"]
    if found:
        print("Detected issues:")
        for it in found:
            print(f"- {it}")
    if plan["cycles"]:
        print("[debug] cycles:", plan["cycles"])


@app.command()
def diff(
    base_url: Optional[str] = typer.Option(None, "--base-url", help="n8n base URL (env: N8N_BASE_URL)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="n8n API key (env: N8N_API_KEY)"),
    workflows_dir: Optional[Path] = typer.Option(None, "--workflows-dir", "-d", help="Repository root (env: WORKFLOWS_DIR)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show per-node changes"),
):
    """
    Show what a sync would change, without writing anything.
    """
    _setup_logging(verbose, None)
    try:
        cfg = load_config(base_url=base_url, api_key=api_key, workflows_dir=workflows_dir)
        cfg.validate()
        records, _ = load_repository(cfg.workflows_dir)
        client = N8nClient(cfg.base_url, cfg.api_key, timeout=cfg.timeout)
        rows = diff_repository(client, records)
    except SyncError as e:
        print(f"[fatal] {e}")
        raise typer.Exit(code=EXIT_FATAL)

    for row in rows:
        print(f"[{row['status']}] {row['name']}: {row['summary']}")
        if verbose and row.get("changes"):
            for kind, nodes in row["changes"]["nodes"].items():
                for n in nodes:
                    print(f"    {kind}: {n}")


if __name__ == "__main__":
    app()
