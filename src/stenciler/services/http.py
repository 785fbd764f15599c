"""Remote API backend using requests.

Implements the snapshot, catalog and rendering contracts against the stack
management API. Every response body is wrapped as {"response": ...}.
"""

import logging
from typing import Any

import requests

from stenciler.models import Diagnostic, Formation, RenderResponse, Snapshot
from stenciler.services.base import ServiceBackend, ServiceError

logger = logging.getLogger(__name__)

# Raised by from_dict parsing when the server sends unexpected shapes
_PAYLOAD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


class HttpBackend(ServiceBackend):
    """Stack management API client.

    Attributes:
        api_base: API base URL (no trailing slash)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        name: str,
        api_base: str,
        api_key: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(name)
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            }
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the response payload.

        Raises:
            ServiceError: On transport errors, non-2xx status or bad JSON
        """
        url = f"{self.api_base}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)

        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ServiceError(self.name, f"{method} {url}: {e}") from e

        if not response.ok:
            raise ServiceError(
                self.name,
                f"{method} {url}: {response.text.strip() or response.reason}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError(self.name, f"{method} {url}: invalid JSON response") from e

        if isinstance(payload, dict) and "response" in payload:
            return payload["response"]
        return payload

    def list_snapshots(self, stack: str) -> list[Snapshot]:
        data = self._request("GET", f"stacks/{stack}/snapshots.json")
        try:
            snapshots = [Snapshot.from_dict(item) for item in data or []]
        except _PAYLOAD_ERRORS as e:
            raise ServiceError(self.name, f"Unexpected snapshots payload: {e}") from e
        return sorted(snapshots, key=lambda s: s.created_at, reverse=True)

    def list_formations(self, stack: str) -> list[Formation]:
        data = self._request("GET", f"stacks/{stack}/formations.json")
        try:
            return [Formation.from_dict(item) for item in data or []]
        except _PAYLOAD_ERRORS as e:
            raise ServiceError(self.name, f"Unexpected formations payload: {e}") from e

    def render(
        self,
        stack: str,
        snapshot_id: str,
        formation_id: str,
        template_id: str,
        body: bytes,
    ) -> RenderResponse:
        data = self._request(
            "POST",
            f"stacks/{stack}/snapshots/{snapshot_id}/formations/{formation_id}"
            f"/stencils/{template_id}/render.json",
            json={"body": body.decode("utf-8", errors="replace")},
        )
        data = data or {}
        try:
            return RenderResponse(
                contents=[str(item.get("content", "")) for item in data.get("stencils") or []],
                diagnostics=[Diagnostic.from_dict(item) for item in data.get("errors") or []],
            )
        except _PAYLOAD_ERRORS as e:
            raise ServiceError(self.name, f"Unexpected render payload: {e}") from e

    def get_metadata(self) -> dict[str, Any]:
        metadata = super().get_metadata()
        metadata["api_base"] = self.api_base
        return metadata
