"""Unit tests for the render invoker."""

import logging
from pathlib import Path

import pytest
from conftest import FakeBackend, error, warning

from stenciler.engine import RenderInvoker
from stenciler.models import FileStatus, Formation, RenderInput, RenderResponse
from stenciler.services import ServiceError


def make_input(name: str, body: bytes = b"app: A\n") -> RenderInput:
    return RenderInput(path=Path("/stencils") / name, body=body)


class TestRenderInvoker:
    """Tests for a single render call."""

    def test_renders_registered_stencil(
        self, invoker: RenderInvoker, backend: FakeBackend, formation: Formation
    ) -> None:
        """Test a clean render returns the service contents."""
        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.RENDERED
        assert invocation.contents == ["APP: A\n"]
        assert backend.render_calls == [
            {
                "stack": "stack-1",
                "snapshot_id": "snap-new",
                "formation_id": "frm-1",
                "template_id": "st-app",
                "body": b"app: A\n",
            }
        ]

    def test_private_stencil_skipped(
        self, invoker: RenderInvoker, backend: FakeBackend, formation: Formation
    ) -> None:
        """Test partials are never submitted."""
        invocation = invoker.render(formation, make_input("_partial.yml"), "snap-new")

        assert invocation.status is FileStatus.SKIPPED
        assert backend.render_calls == []

    def test_empty_stencil_skipped(
        self,
        invoker: RenderInvoker,
        backend: FakeBackend,
        formation: Formation,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test empty stencils are skipped with a warning."""
        with caplog.at_level(logging.WARNING):
            invocation = invoker.render(formation, make_input("app.yml", b""), "snap-new")

        assert invocation.status is FileStatus.SKIPPED
        assert backend.render_calls == []
        assert "is empty" in caplog.text

    def test_unknown_stencil_fails_with_hint(
        self,
        invoker: RenderInvoker,
        backend: FakeBackend,
        formation: Formation,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test an unregistered stencil fails and suggests retrying."""
        with caplog.at_level(logging.ERROR):
            invocation = invoker.render(formation, make_input("new.yml"), "snap-new")

        assert invocation.status is FileStatus.FAILED
        assert "new.yml" in (invocation.message or "")
        assert "try again" in caplog.text
        assert backend.render_calls == []

    def test_service_failure(
        self, invoker: RenderInvoker, backend: FakeBackend, formation: Formation
    ) -> None:
        """Test a transport failure is returned as FAILED, not raised."""
        backend.failures["st-app"] = ServiceError("http", "boom", 500)

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.FAILED
        assert "boom" in (invocation.message or "")


class TestDiagnosticPolicy:
    """Tests for error/warning triage."""

    @pytest.fixture
    def with_error(self, backend: FakeBackend) -> FakeBackend:
        backend.responses["st-app"] = RenderResponse(
            contents=["partial\n"], diagnostics=[error("missing x")]
        )
        return backend

    @pytest.fixture
    def with_warning(self, backend: FakeBackend) -> FakeBackend:
        backend.responses["st-app"] = RenderResponse(
            contents=["ok\n"], diagnostics=[warning("deprecated y")]
        )
        return backend

    def test_error_suppresses_output(
        self,
        invoker: RenderInvoker,
        with_error: FakeBackend,
        formation: Formation,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test an error blocks the output and is reported."""
        with caplog.at_level(logging.ERROR):
            invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.SUPPRESSED
        assert invocation.contents == []
        assert "missing x in app.yml" in caplog.text

    def test_ignored_error_emits_output(
        self, with_error: FakeBackend, formation: Formation
    ) -> None:
        """Test ignore_errors lets the output through."""
        invoker = RenderInvoker(with_error, with_error, "stack-1", ignore_errors=True)

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.RENDERED
        assert invocation.contents == ["partial\n"]
        assert len(invocation.diagnostics) == 1

    def test_ignored_warnings_do_not_cover_errors(
        self, with_error: FakeBackend, formation: Formation
    ) -> None:
        """Test ignoring warnings alone still blocks on errors."""
        invoker = RenderInvoker(with_error, with_error, "stack-1", ignore_warnings=True)

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.SUPPRESSED

    def test_warning_suppresses_output(
        self,
        invoker: RenderInvoker,
        with_warning: FakeBackend,
        formation: Formation,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test a warning blocks the output under the strict policy."""
        with caplog.at_level(logging.WARNING):
            invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.SUPPRESSED
        assert "deprecated y in app.yml" in caplog.text

    def test_ignored_warning_emits_output(
        self, with_warning: FakeBackend, formation: Formation
    ) -> None:
        """Test ignore_warnings lets the output through."""
        invoker = RenderInvoker(with_warning, with_warning, "stack-1", ignore_warnings=True)

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.RENDERED
        assert invocation.contents == ["ok\n"]

    def test_ignored_errors_do_not_cover_warnings(
        self, backend: FakeBackend, formation: Formation
    ) -> None:
        """Test ignoring errors alone still blocks on warnings."""
        backend.responses["st-app"] = RenderResponse(
            contents=["x\n"], diagnostics=[error("e"), warning("w")]
        )
        invoker = RenderInvoker(backend, backend, "stack-1", ignore_errors=True)

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.SUPPRESSED
        assert invocation.message == "1 warning(s)"

    def test_everything_ignored(self, backend: FakeBackend, formation: Formation) -> None:
        """Test both flags together emit output despite both kinds."""
        backend.responses["st-app"] = RenderResponse(
            contents=["x\n"], diagnostics=[error("e"), warning("w")]
        )
        invoker = RenderInvoker(
            backend, backend, "stack-1", ignore_errors=True, ignore_warnings=True
        )

        invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.RENDERED

    def test_warnings_reported_when_errors_suppress(
        self,
        invoker: RenderInvoker,
        backend: FakeBackend,
        formation: Formation,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test warnings are still reported when an error already blocks the output."""
        backend.responses["st-app"] = RenderResponse(
            contents=["x\n"], diagnostics=[error("bad thing"), warning("deprecated key")]
        )

        with caplog.at_level(logging.WARNING):
            invocation = invoker.render(formation, make_input("app.yml"), "snap-new")

        assert invocation.status is FileStatus.SUPPRESSED
        assert invocation.message == "1 error(s)"
        assert "bad thing in app.yml" in caplog.text
        assert "deprecated key in app.yml" in caplog.text
