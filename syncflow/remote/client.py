# syncflow/remote/client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from syncflow.errors import MissingIdentifierError, TransportError
from syncflow.remote.surfaces import SURFACES, ApiSurface, PublicApiSurface, extract_id
from syncflow.remote.transport import HttpTransport
from syncflow.utils.logger import get_logger

log = get_logger("client")


class N8nClient:
    """
    Workflow CRUD against an n8n instance.

    The first successful list call fixes the API surface for the rest of the
    session; later calls never switch surfaces.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.http = HttpTransport(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            session=session if session is not None else requests.Session(),
        )
        self._surface: Optional[ApiSurface] = None

    @property
    def surface(self) -> ApiSurface:
        if self._surface is None:
            # nothing negotiated yet: assume the public API without locking it in
            return PublicApiSurface(self.http)
        return self._surface

    @property
    def api_version(self) -> Optional[str]:
        return self._surface.name if self._surface is not None else None

    def list_workflows(self) -> List[Dict[str, Any]]:
        if self._surface is not None:
            return self._surface.list_workflows()

        last_error: Optional[TransportError] = None
        for surface_cls in SURFACES:
            surface = surface_cls(self.http)
            try:
                items = surface.list_workflows()
            except TransportError as e:
                log.debug(f"{surface.name} API unavailable: {e}")
                last_error = e
                continue
            self._surface = surface
            log.info(f"Using {surface.name} API ({len(items)} workflows listed)")
            return items

        assert last_error is not None
        raise last_error

    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self.surface.get_workflow(workflow_id)

    def create_workflow(self, payload: Dict[str, Any]) -> str:
        """Create and return the new id. A response without an id is an error."""
        created = self.surface.create_workflow(payload)
        new_id = extract_id(created)
        if not new_id:
            raise MissingIdentifierError(
                f"No ID returned from workflow creation of '{payload.get('name')}'",
                method="POST",
                path=self.surface.workflow_path(),
            )
        return new_id

    def update_workflow(self, workflow_id: str, payload: Dict[str, Any]) -> Any:
        return self.surface.update_workflow(workflow_id, payload)

    def activate_workflow(self, workflow_id: str) -> Any:
        return self.surface.activate_workflow(workflow_id)
