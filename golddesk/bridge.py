import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import requests

from golddesk.export import documents_dir, export_filename, write_workbook
from golddesk.models import BridgeOperation, BridgeRequest, BridgeResponse

logger = logging.getLogger(__name__)

APP_NAME = "Gold Trading"

Notifier = Callable[[str, str], Any]


def plyer_notifier(title: str, message: str):
    from plyer import notification
    notification.notify(title=title, message=message, app_name=APP_NAME, timeout=5)


class NativeBridge:
    """Fixed set of native operations callable from the hosted frontend."""

    def __init__(self,
                 session: requests.Session,
                 api_url: str,
                 notifier: Notifier = plyer_notifier,
                 export_dir: Optional[Union[str, Path]] = None,
                 timeout: float = 30.0):
        """
        Args:
            session: Shared HTTP session (owned by the shell)
            api_url: Backend API base, e.g. http://localhost:8080/api
            notifier: Callable showing a native notification
            export_dir: Where exported spreadsheets go (defaults to the documents folder)
            timeout: Upper bound in seconds for the export download
        """
        self.session = session
        self.api_url = api_url.rstrip("/")
        self.notifier = notifier
        self.export_dir = Path(export_dir) if export_dir else None
        self.timeout = timeout

        self.logger = logging.getLogger(__name__)
        self._handlers: Dict[BridgeOperation, Callable[[Dict[str, Any]], BridgeResponse]] = {
            BridgeOperation.NOTIFY: self._handle_notify,
            BridgeOperation.EXPORT_DATA: self._handle_export,
        }

    def dispatch(self, request: BridgeRequest) -> BridgeResponse:
        """Run one bridge operation. Errors come back as a failure response, never raised."""
        handler = self._handlers.get(request.operation)
        if handler is None:
            return BridgeResponse.failure(f"Unknown bridge operation: {request.operation}")
        try:
            return handler(request.payload)
        except Exception as e:
            self.logger.exception(f"Bridge operation {request.operation.value} failed: {e}")
            return BridgeResponse.failure(f"{request.operation.value} failed: {e}")

    # -- operations --------------------------------------------------------

    def notify(self, title: str, message: str) -> None:
        """Show a native notification. Best-effort: failures are logged and dropped."""
        try:
            self.notifier(title, message)
        except Exception as e:
            self.logger.warning(f"Notification failed: {e}")

    def export_data(self) -> str:
        """
        Download the CSV export and write it as a spreadsheet.

        Returns:
            The absolute path of the written file, or an "Export failed: ..."
            message if anything went wrong.
        """
        try:
            return str(self._export())
        except Exception as e:
            return self._export_failure(e)

    def _export(self) -> Path:
        """Download and convert. Raises on any network, parse or write error."""
        response = self.session.get(f"{self.api_url}/transactions/export/csv", timeout=self.timeout)
        response.raise_for_status()
        target_dir = self.export_dir or documents_dir()
        return write_workbook(response.text, target_dir / export_filename())

    def _export_failure(self, error: Exception) -> str:
        self.logger.error(f"Export failed: {error}")
        return f"Export failed: {error}"

    def _handle_notify(self, payload: Dict[str, Any]) -> BridgeResponse:
        self.notify(str(payload.get("title", "")), str(payload.get("message", "")))
        return BridgeResponse.success()

    def _handle_export(self, payload: Dict[str, Any]) -> BridgeResponse:
        try:
            return BridgeResponse.success(str(self._export()))
        except Exception as e:
            return BridgeResponse.failure(self._export_failure(e))


class JsApi:
    """
    The object handed to pywebview as ``js_api``.

    pywebview exposes every public attribute to the page, so this class carries
    nothing but the two bridge calls. Each one runs on a pywebview worker thread
    and resolves a Promise on the script side.
    """

    def __init__(self, bridge: NativeBridge):
        self._bridge = bridge

    def notify(self, title, message):
        self._bridge.dispatch(BridgeRequest(
            operation=BridgeOperation.NOTIFY,
            payload={"title": title, "message": message},
        ))

    def exportData(self):
        response = self._bridge.dispatch(BridgeRequest(operation=BridgeOperation.EXPORT_DATA))
        return response.value if response.ok else response.error
