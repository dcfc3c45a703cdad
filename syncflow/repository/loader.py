# syncflow/repository/loader.py
"""
Definition loader: turns a directory of workflow files into WorkflowRecords.

A broken file never stops the run. Every problem is reported as a "[LOAD] ..."
issue string and the file is skipped, the same way the structural checker
collects human-readable issues instead of raising.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set, Tuple

from jsonschema import ValidationError, validate
from yaml import YAMLError

from syncflow.repository.dependencies import extract_dependencies
from syncflow.repository.schema import WORKFLOW_FILE_SCHEMA
from syncflow.utils.io import PathLike, find_files, load_any, to_path
from syncflow.utils.logger import get_logger

log = get_logger("loader")

DEFAULT_EXTENSIONS = (".json",)


@dataclass
class WorkflowRecord:
    name: str
    workflow: Dict[str, Any]
    path: Path
    dependencies: Set[str] = field(default_factory=set)

    @property
    def key(self) -> str:
        """Identity key used to match repository and remote workflows."""
        return self.name.lower()


def name_from_filename(path: PathLike) -> str:
    """'user_login.json' -> 'User Login'."""
    stem = to_path(path).stem.replace("_", " ")
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), stem)


def load_workflow_file(path: PathLike) -> WorkflowRecord:
    """
    Parse and validate one file.

    Raises ValueError with a readable message when the file cannot take part in a sync.
    """
    p = to_path(path)
    try:
        data = load_any(p)
    except (json.JSONDecodeError, YAMLError, UnicodeDecodeError) as e:
        raise ValueError(f"unparsable file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("top-level value is not an object")
    if "nodes" not in data or data["nodes"] is None:
        raise ValueError("missing nodes array")
    try:
        validate(instance=data, schema=WORKFLOW_FILE_SCHEMA)
    except ValidationError as e:
        raise ValueError(f"schema validation error: {e.message}") from e

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        name = name_from_filename(p)
        data["name"] = name
        log.debug(f"Adding workflow name from filename: {name} ({p})")

    return WorkflowRecord(
        name=name,
        workflow=data,
        path=p,
        dependencies=extract_dependencies(data),
    )


def load_repository(
    root: PathLike,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> Tuple[List[WorkflowRecord], List[str]]:
    """
    Load every workflow file under root (recursively).

    Returns:
        records (one per unique identity key, in file order), issues (List[str])
    """
    records: List[WorkflowRecord] = []
    issues: List[str] = []
    seen: Dict[str, Path] = {}

    for fp in find_files(root, extensions):
        try:
            rec = load_workflow_file(fp)
        except (OSError, ValueError) as e:
            issues.append(f"[LOAD] Skipping {fp}: {e}")
            continue

        if rec.key in seen:
            issues.append(
                f"[LOAD] Skipping {fp}: duplicate workflow name '{rec.name}' "
                f"(already defined in {seen[rec.key]})"
            )
            continue

        seen[rec.key] = fp
        records.append(rec)

    for msg in issues:
        log.warning(msg)
    log.info(f"Loaded {len(records)} workflows from {root}")
    return records, issues
