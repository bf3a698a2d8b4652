"""Unit tests for the lifecycle controller."""

import json
import threading
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest

from dmzctl.core.context import create_context
from dmzctl.core.exceptions import ServerError, UnsupportedPlatformError
from dmzctl.core.output import console
from dmzctl.lifecycle import LifecycleController
from dmzctl.services.supervisor import ProcessSupervisor


@pytest.fixture
def ctx(tmp_path):
    """Context pointing at a config file that does not exist."""
    return create_context(config=tmp_path / "config.json", no_color=True)


@pytest.fixture
def supervisor() -> MagicMock:
    return MagicMock(spec=ProcessSupervisor)


@pytest.fixture
def form_server() -> Generator[MagicMock, None, None]:
    """Replace FormServer with a mock whose serve() blocks until stopped."""
    with patch("dmzctl.lifecycle.FormServer") as mock_cls:
        instance = mock_cls.return_value
        instance.url = "http://localhost:8080"
        instance.serve.side_effect = lambda stop: stop.wait(5)
        yield mock_cls


class TestLoadSettings:
    """Tests for LifecycleController.load_settings."""

    def test_missing_config_uses_defaults(self, ctx, supervisor):
        controller = LifecycleController(ctx, supervisor=supervisor)
        controller.load_settings()

        assert ctx.config_error is not None
        assert ctx.settings.server_port == "8080"
        assert ctx.settings.dmz_enable == "1"

    def test_port_override(self, ctx, supervisor, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"server_port": "9000"}), encoding="utf-8")
        controller = LifecycleController(ctx, supervisor=supervisor, port="9100")
        controller.load_settings()

        assert ctx.settings.server_port == "9100"


class TestServerThread:
    """Tests for the background server thread."""

    def test_launches_browser_and_serves(self, ctx, supervisor, form_server):
        controller = LifecycleController(ctx, supervisor=supervisor)
        thread = controller.start()

        controller.stop_event.set()
        thread.join(timeout=5)

        instance = form_server.return_value
        instance.bind.assert_called_once()
        supervisor.launch.assert_called_once_with("http://localhost:8080")
        instance.serve.assert_called_once_with(controller.stop_event)
        assert form_server.call_args.kwargs["port"] == "8080"

    def test_no_browser(self, ctx, supervisor, form_server):
        controller = LifecycleController(ctx, supervisor=supervisor, open_browser=False)
        thread = controller.start()
        controller.stop_event.set()
        thread.join(timeout=5)

        supervisor.launch.assert_not_called()
        form_server.return_value.serve.assert_called_once()

    def test_launch_failure_still_serves(self, ctx, supervisor, form_server):
        """An unsupported platform only produces the manual-visit hint."""
        supervisor.launch.side_effect = UnsupportedPlatformError("linux")
        controller = LifecycleController(ctx, supervisor=supervisor)
        thread = controller.start()
        controller.stop_event.set()
        thread.join(timeout=5)

        form_server.return_value.serve.assert_called_once()

    def test_bind_failure_is_not_fatal(self, ctx, supervisor, form_server):
        """A busy port is logged; nothing is launched or served."""
        form_server.return_value.bind.side_effect = ServerError("busy", hint="change port")
        controller = LifecycleController(ctx, supervisor=supervisor)
        thread = controller.start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        supervisor.launch.assert_not_called()
        form_server.return_value.serve.assert_not_called()


class TestRun:
    """Tests for the full interactive run."""

    def test_enter_triggers_shutdown(self, ctx, supervisor, form_server):
        launched = threading.Event()
        supervisor.launch.side_effect = lambda url: launched.set()
        controller = LifecycleController(ctx, supervisor=supervisor, shutdown_grace=0)

        with patch.object(console, "input", side_effect=lambda *a: launched.wait(5) and ""):
            exit_code = controller.run()

        assert exit_code == 0
        assert controller.stop_event.is_set()
        supervisor.cleanup.assert_called_once()
        assert controller._server_thread is not None
        controller._server_thread.join(timeout=5)
        assert not controller._server_thread.is_alive()

    @pytest.mark.parametrize("error", [EOFError, KeyboardInterrupt])
    def test_closed_input_also_shuts_down(self, ctx, supervisor, form_server, error):
        controller = LifecycleController(ctx, supervisor=supervisor, shutdown_grace=0)

        with patch.object(console, "input", side_effect=error):
            assert controller.run() == 0

        assert controller.stop_event.is_set()
        supervisor.cleanup.assert_called_once()

    def test_shutdown_waits_grace_period(self, ctx, supervisor):
        controller = LifecycleController(ctx, supervisor=supervisor)

        with patch("dmzctl.lifecycle.time.sleep") as mock_sleep:
            controller.shutdown()

        mock_sleep.assert_called_once_with(0.5)
        supervisor.cleanup.assert_called_once()
