# syncflow/utils/io.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Union

import yaml

# -------- Path helpers --------
PathLike = Union[str, Path]


def to_path(p: PathLike) -> Path:
    """Convert string-like to pathlib.Path."""
    return p if isinstance(p, Path) else Path(p)


def ensure_parent(path: PathLike) -> Path:
    """Ensure parent directory exists for a file path."""
    p = to_path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def find_files(root: PathLike, extensions: Iterable[str] = (".json",)) -> List[Path]:
    """
    Recursively list regular files under root whose suffix is one of `extensions`.
    Sorted by path so repeated runs see the same sequence.
    """
    wanted = {e.lower() for e in extensions}
    return sorted(
        p for p in to_path(root).rglob("*")
        if p.is_file() and p.suffix.lower() in wanted
    )


# -------- JSON / YAML --------
def read_json(path: PathLike) -> Any:
    """Load JSON file with UTF-8."""
    with to_path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: PathLike, data: Any, indent: int = 2) -> Path:
    """Write JSON atomically, pretty-formatted."""
    p = ensure_parent(path)
    tmp = p.with_suffix(p.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=indent)
    tmp.replace(p)
    return p


def read_yaml(path: PathLike) -> Any:
    """Load YAML with the safe loader."""
    with to_path(path).open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# -------- Generic loader --------
def load_any(path: PathLike) -> Any:
    """
    Load data by extension:
      - .json -> JSON
      - .yaml/.yml -> YAML
    """
    p = to_path(path)
    suf = p.suffix.lower()
    if suf == ".json":
        return read_json(p)
    if suf in (".yaml", ".yml"):
        return read_yaml(p)
    raise ValueError(f"Unsupported extension: {suf} for {p}")


def canonical_json(data: Any) -> str:
    """Serialize with sorted keys so that field order never affects equality."""
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
