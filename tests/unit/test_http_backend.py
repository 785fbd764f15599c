"""Unit tests for the remote API backend.

The requests session is replaced with a recording fake so no network is used.
"""

from typing import Any

import pytest
import requests

from stenciler.models import DiagnosticKind
from stenciler.services import FormationNotFoundError, HttpBackend, ServiceError


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.reason = "Error"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []
        self.responses: list[FakeResponse | Exception] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> HttpBackend:
    return HttpBackend(
        "http",
        api_base="https://api.example.test/api/3/",
        api_key="tok",
        timeout=7.0,
        session=session,  # type: ignore[arg-type]
    )


class TestHttpBackend:
    """Tests for request shaping and response parsing."""

    def test_auth_header(self, client: HttpBackend, session: FakeSession) -> None:
        assert session.headers["Authorization"] == "Bearer tok"

    def test_snapshots_newest_first(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(
            FakeResponse(
                payload={
                    "response": [
                        {"uid": "old", "created_at": "2024-01-01T00:00:00Z"},
                        {"uid": "new", "created_at": "2024-02-01T00:00:00Z"},
                    ]
                }
            )
        )

        snapshots = client.list_snapshots("stack-1")

        assert [s.uid for s in snapshots] == ["new", "old"]
        assert session.calls[0]["url"] == (
            "https://api.example.test/api/3/stacks/stack-1/snapshots.json"
        )
        assert session.calls[0]["timeout"] == 7.0

    def test_load_formation(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(
            FakeResponse(
                payload={
                    "response": [
                        {"uid": "f1", "name": "api", "stencils": []},
                        {
                            "uid": "f2",
                            "name": "web",
                            "stencils": [{"uid": "s1", "filename": "app.yml"}],
                        },
                    ]
                }
            )
        )

        formation = client.load_formation("stack-1", "web")

        assert formation.uid == "f2"
        assert client.resolve_template(formation, "app.yml") == "s1"

    def test_unknown_formation(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(FakeResponse(payload={"response": []}))

        with pytest.raises(FormationNotFoundError, match="No formation with name web"):
            client.load_formation("stack-1", "web")

    def test_render(self, client: HttpBackend, session: FakeSession) -> None:
        """Test the body is posted and contents and diagnostics parsed."""
        session.responses.append(
            FakeResponse(
                payload={
                    "response": {
                        "stencils": [{"filename": "app.yml", "content": "APP\n"}],
                        "errors": [{"type": "warning", "text": "old", "stencil": "app.yml"}],
                    }
                }
            )
        )

        response = client.render("stack-1", "snap", "f2", "s1", b"app\n")

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"].endswith(
            "/stacks/stack-1/snapshots/snap/formations/f2/stencils/s1/render.json"
        )
        assert call["json"] == {"body": "app\n"}
        assert response.contents == ["APP\n"]
        assert response.diagnostics[0].kind is DiagnosticKind.WARNING

    def test_render_empty_payload(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(FakeResponse(payload={"response": {}}))

        response = client.render("stack-1", "snap", "f2", "s1", b"app\n")

        assert response.contents == []
        assert response.diagnostics == []


class TestHttpErrors:
    """Tests for transport and protocol failures."""

    def test_status_error(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(FakeResponse(status_code=401, text="unauthorized"))

        with pytest.raises(ServiceError) as exc_info:
            client.list_formations("stack-1")

        assert exc_info.value.status_code == 401
        assert "unauthorized" in str(exc_info.value)

    def test_connection_error(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(requests.ConnectionError("refused"))

        with pytest.raises(ServiceError, match="refused"):
            client.list_snapshots("stack-1")

    def test_invalid_json(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(FakeResponse(payload=None))

        with pytest.raises(ServiceError, match="invalid JSON"):
            client.list_snapshots("stack-1")

    def test_malformed_snapshot_date(self, client: HttpBackend, session: FakeSession) -> None:
        """Test a bad created_at becomes a ServiceError, not a crash."""
        session.responses.append(
            FakeResponse(payload={"response": [{"uid": "s1", "created_at": "yesterday"}]})
        )

        with pytest.raises(ServiceError, match="Unexpected snapshots payload"):
            client.list_snapshots("stack-1")

    def test_non_object_formation(self, client: HttpBackend, session: FakeSession) -> None:
        session.responses.append(FakeResponse(payload={"response": ["web"]}))

        with pytest.raises(ServiceError, match="Unexpected formations payload"):
            client.list_formations("stack-1")

    def test_non_object_rendered_stencil(
        self, client: HttpBackend, session: FakeSession
    ) -> None:
        """Test a rendered item that is not an object is reported as a service failure."""
        session.responses.append(FakeResponse(payload={"response": {"stencils": ["APP"]}}))

        with pytest.raises(ServiceError, match="Unexpected render payload"):
            client.render("stack-1", "snap", "f2", "s1", b"app\n")
