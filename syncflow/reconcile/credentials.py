# syncflow/reconcile/credentials.py
"""
Credential helpers shared by the change detector and the merge engine.

Repository files never hold real credential ids. The sanitizer rewrites every
node credential into a placeholder:

    {"name": "Slack account", "_type": "slackApi", "_preserveInstance": true}

while the server holds the resolved reference {"id": "12", "name": "Slack account"}.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

PRESERVE_MARKER = "_preserveInstance"
TYPE_MARKER = "_type"


def is_placeholder(cred: Any) -> bool:
    return isinstance(cred, dict) and bool(cred.get(PRESERVE_MARKER) or cred.get(TYPE_MARKER))


def strip_credential_ids(value: Any) -> Any:
    """
    Copy of `value` with the "id" removed from every object that also has a string
    "name" (the shape of a credential reference). Lists and nested objects are walked.
    """
    if isinstance(value, dict):
        looks_like_ref = isinstance(value.get("name"), str)
        return {
            k: strip_credential_ids(v)
            for k, v in value.items()
            if not (k == "id" and looks_like_ref)
        }
    if isinstance(value, list):
        return [strip_credential_ids(v) for v in value]
    return value


def clean_repo_credentials(credentials: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Reduce placeholders to {"name": ...} so the service (re)binds them by name."""
    if credentials is None:
        return None
    cleaned: Dict[str, Any] = {}
    for ctype, cred in credentials.items():
        if is_placeholder(cred):
            cleaned[ctype] = {"name": cred.get("name")}
        else:
            cleaned[ctype] = cred
    return cleaned


def merge_credentials(
    repo_credentials: Optional[Dict[str, Any]],
    remote_credentials: Optional[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """
    Combine one node's credentials.

    - placeholder marked preserve-instance and bound remotely: remote value verbatim
    - other placeholder (has a type marker): reduced to its display name
    - anything else: repository value unchanged
    Only credential types present on the repository side survive, unless the
    repository node has no credentials at all, in which case the remote ones are kept.
    """
    if not repo_credentials and not remote_credentials:
        return None
    if not repo_credentials:
        return dict(remote_credentials)
    if not remote_credentials:
        return clean_repo_credentials(repo_credentials)

    merged: Dict[str, Any] = {}
    for ctype, cred in repo_credentials.items():
        if isinstance(cred, dict) and cred.get(PRESERVE_MARKER) and ctype in remote_credentials:
            merged[ctype] = remote_credentials[ctype]
        elif isinstance(cred, dict) and cred.get(TYPE_MARKER):
            merged[ctype] = {"name": cred.get("name")}
        else:
            merged[ctype] = cred
    return merged
