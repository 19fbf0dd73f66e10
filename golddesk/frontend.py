import logging
import threading
from typing import Any, Callable, Optional

from golddesk.supervisor import BackendSupervisor

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[str, str], Any]


class FrontendLoader:
    """
    Points the embedded view at the frontend once the backend is ready.

    Navigation happens at most once. Later READY/DEGRADED flips do not reload
    the page, and a failed navigation is reported but not retried.
    """

    def __init__(self, supervisor: BackendSupervisor, view: Any,
                 report_error: ErrorReporter, ready_timeout: Optional[float] = 30.0):
        """
        Args:
            supervisor: Supervisor whose first READY gates navigation
            view: Object with a ``load_url(url)`` method (a pywebview window)
            report_error: Called with (title, message) to show an error to the user
            ready_timeout: Seconds to wait for READY; None waits forever
        """
        self.supervisor = supervisor
        self.view = view
        self.report_error = report_error
        self.ready_timeout = ready_timeout

        self._lock = threading.Lock()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self, url: str) -> bool:
        """Navigate to `url`. Returns True if navigation was issued (now or before)."""
        with self._lock:
            if self._loaded:
                logger.debug("Frontend already loaded; ignoring load()")
                return True

            if not self.supervisor.wait_until_ready(self.ready_timeout):
                self._report("Load failed", f"Backend is not ready ({self.supervisor.state.value}); "
                                            f"cannot open {url}")
                return False

            try:
                logger.info(f"Loading frontend from {url}")
                self.view.load_url(url)
            except Exception as e:
                self._report("Load failed", f"Could not load the frontend: {e}")
                return False

            self._loaded = True
            return True

    def _report(self, title: str, message: str):
        logger.error(message)
        try:
            self.report_error(title, message)
        except Exception as e:
            logger.warning(f"Could not show error dialog: {e}")
