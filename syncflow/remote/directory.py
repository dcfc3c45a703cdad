# syncflow/remote/directory.py
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Dict, Iterable, Iterator, List, Optional

from syncflow.remote.surfaces import extract_id


class NameToIdMap(MutableMapping):
    """
    Run-scoped map of lower-cased workflow name -> server id.

    Seeded from the remote snapshot, extended after every successful create.
    Empty ids are refused so a failed create can never poison later lookups.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._ids: Dict[str, str] = {}
        for k, v in (initial or {}).items():
            self[k] = v

    def __getitem__(self, name: str) -> str:
        return self._ids[name.lower()]

    def __setitem__(self, name: str, workflow_id: str) -> None:
        if not workflow_id:
            raise ValueError(f"refusing to map '{name}' to an empty id")
        self._ids[name.lower()] = str(workflow_id)

    def __delitem__(self, name: str) -> None:
        del self._ids[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._ids

    def get(self, name: str, default: Any = None) -> Any:
        return self._ids.get(name.lower(), default)

    def __repr__(self) -> str:
        return f"NameToIdMap({self._ids!r})"


class RemoteDirectory:
    """Snapshot of the workflows listed by the server, keyed by identity key. Read-only."""

    def __init__(self, summaries: Dict[str, Dict[str, Any]]) -> None:
        self._by_key = summaries

    @classmethod
    def from_summaries(cls, items: Iterable[Dict[str, Any]]) -> "RemoteDirectory":
        by_key: Dict[str, Dict[str, Any]] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            if not isinstance(name, str) or not name:
                continue
            # first listed wins when the server holds duplicate names
            by_key.setdefault(name.lower(), item)
        return cls(by_key)

    def lookup(self, name: str) -> Optional[Dict[str, Any]]:
        return self._by_key.get(name.lower())

    def id_of(self, name: str) -> Optional[str]:
        return extract_id(self.lookup(name))

    def names(self) -> List[str]:
        return [w["name"] for w in self._by_key.values()]

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._by_key

    def name_to_id(self) -> NameToIdMap:
        ids = NameToIdMap()
        for key, item in self._by_key.items():
            wid = extract_id(item)
            if wid:
                ids[key] = wid
        return ids
