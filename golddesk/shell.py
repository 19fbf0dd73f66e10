"""Desktop window hosting the frontend, wired to the supervisor and the bridge."""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

import requests
import webview

from golddesk.bridge import JsApi, NativeBridge
from golddesk.frontend import FrontendLoader
from golddesk.models import SupervisorState
from golddesk.supervisor import BackendStartupError, BackendSupervisor

logger = logging.getLogger(__name__)

APP_TITLE = "Gold Trading"
LOADING_HTML = (
    "<body style='font-family:Segoe UI,system-ui,sans-serif;display:flex;"
    "align-items:center;justify-content:center;height:100vh;margin:0'>"
    "Starting backend service...</body>"
)


def webview_profile_dir() -> Path:
    """Writable folder for the embedded browser's profile, created if missing."""
    base = os.environ.get("LOCALAPPDATA")
    root = Path(base) if base else Path.home() / ".local" / "share"
    path = root / "GoldTradingSystem" / "WebView2Data"
    path.mkdir(parents=True, exist_ok=True)
    return path


class Shell:
    """Owns the window. Composes supervisor, loader and bridge for one app session."""

    def __init__(self,
                 supervisor: BackendSupervisor,
                 bridge: NativeBridge,
                 session: requests.Session,
                 frontend_url: str,
                 storage_path: Optional[Path] = None,
                 debug: bool = False,
                 title: str = APP_TITLE):
        self.supervisor = supervisor
        self.bridge = bridge
        self.session = session
        self.frontend_url = frontend_url
        self.storage_path = storage_path
        self.debug = debug
        self.title = title

        self.window = None
        self.loader: Optional[FrontendLoader] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._shutdown_lock = threading.Lock()
        self._shut_down = False

    def run(self):
        """Open the window and block until it is closed."""
        storage_path = self.storage_path or webview_profile_dir()

        self.window = webview.create_window(
            self.title,
            html=LOADING_HTML,
            js_api=JsApi(self.bridge),
            width=1280,
            height=800,
            min_size=(960, 600),
        )
        self.loader = FrontendLoader(self.supervisor, self.window, self.show_error)
        self._unsubscribe = self.supervisor.subscribe(self._on_state_change)
        self.window.events.closed += self._on_closed

        try:
            webview.start(self.boot, debug=self.debug, private_mode=False, storage_path=str(storage_path))
        finally:
            self.shutdown()

    def boot(self):
        """Runs on pywebview's worker thread: start the backend, then load the page."""
        try:
            self.supervisor.start()
        except BackendStartupError as e:
            self.show_error("Startup failed", f"Could not start the backend service: {e}")
            return
        self.loader.load(self.frontend_url)

    def show_error(self, title: str, message: str):
        logger.error(f"{title}: {message}")
        if self.window is not None:
            self.window.create_confirmation_dialog(title, message)

    def shutdown(self):
        """Release everything the shell owns. Safe to call more than once."""
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.window is not None:
            self.window.events.closed -= self._on_closed

        self.supervisor.stop()
        self.session.close()
        logger.info("Shell shut down.")

    def _on_closed(self):
        self.shutdown()

    def _on_state_change(self, old: SupervisorState, new: SupervisorState):
        if self.window is None or not (self.loader and self.loader.loaded):
            return
        detail = json.dumps({"state": new.value, "healthy": new == SupervisorState.READY})
        try:
            self.window.evaluate_js(
                f"window.dispatchEvent(new CustomEvent('backend-status', {{detail: {detail}}}))"
            )
        except Exception as e:
            logger.debug(f"Could not push backend status to the page: {e}")
