import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from golddesk.bridge import JsApi
from golddesk.models import SupervisorState
from golddesk.shell import Shell, webview_profile_dir
from golddesk.supervisor import BackendStartupError

URL = "http://localhost:8080"


class TestShell(unittest.TestCase):
    def setUp(self):
        patcher = patch("golddesk.shell.webview")
        self.webview = patcher.start()
        self.addCleanup(patcher.stop)
        self.window = self.webview.create_window.return_value

        self.supervisor = MagicMock()
        self.supervisor.wait_until_ready.return_value = True
        self.unsubscribe = MagicMock()
        self.supervisor.subscribe.return_value = self.unsubscribe
        self.session = MagicMock()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

        self.shell = Shell(self.supervisor, MagicMock(), self.session, URL,
                           storage_path=Path(self.tmpdir.name))

    def test_run_creates_window_and_cleans_up(self):
        self.shell.run()

        kwargs = self.webview.create_window.call_args.kwargs
        self.assertIsInstance(kwargs["js_api"], JsApi)
        start_kwargs = self.webview.start.call_args.kwargs
        self.assertEqual(start_kwargs["storage_path"], self.tmpdir.name)
        self.assertFalse(start_kwargs["private_mode"])

        self.unsubscribe.assert_called_once()
        self.supervisor.stop.assert_called_once()
        self.session.close.assert_called_once()

    def test_shutdown_is_idempotent(self):
        self.shell.run()
        self.shell.shutdown()
        self.supervisor.stop.assert_called_once()

    def test_boot_starts_backend_then_loads(self):
        self.shell.run()
        self.shell.boot()

        self.supervisor.start.assert_called_once()
        self.window.load_url.assert_called_once_with(URL)

    def test_boot_startup_failure_shows_error_and_skips_load(self):
        self.supervisor.start.side_effect = BackendStartupError("not healthy in 30 attempts")
        self.shell.run()
        self.shell.boot()

        self.window.create_confirmation_dialog.assert_called_once()
        title, message = self.window.create_confirmation_dialog.call_args[0]
        self.assertIn("not healthy", message)
        self.window.load_url.assert_not_called()

    def test_status_pushed_to_page_after_load(self):
        self.shell.run()
        self.shell._on_state_change(SupervisorState.READY, SupervisorState.DEGRADED)
        self.window.evaluate_js.assert_not_called()

        self.shell.boot()
        self.shell._on_state_change(SupervisorState.READY, SupervisorState.DEGRADED)
        script = self.window.evaluate_js.call_args[0][0]
        self.assertIn("backend-status", script)
        self.assertIn('"degraded"', script)


class TestProfileDir(unittest.TestCase):

    def test_created_under_local_app_data(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch.dict(os.environ, {"LOCALAPPDATA": tmp}):
                path = webview_profile_dir()
            self.assertTrue(path.is_dir())
            self.assertEqual(path, Path(tmp) / "GoldTradingSystem" / "WebView2Data")


if __name__ == "__main__":
    unittest.main()
