import requests
from typing import Any, Dict, List, Optional

from golddesk.models import Transaction


class BackendUnavailableError(ConnectionError):
    """The backend could not be reached."""


class TransactionClient:
    """Thin pass-through client for the backend's /transactions API."""

    def __init__(self, api_url: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        if not (api_url.startswith("http://") or api_url.startswith("https://")):
            api_url = "http://" + api_url
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.api_url}/transactions{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.ConnectionError as e:
            raise BackendUnavailableError(f"Backend unavailable at {url}") from e

        resp.raise_for_status()
        return resp

    def get_all(self) -> List[Transaction]:
        resp = self._request("GET", "")
        return [Transaction(**item) for item in resp.json()]

    def create(self, transaction: Transaction) -> Transaction:
        resp = self._request("POST", "", json=transaction.to_wire())
        return Transaction(**resp.json())

    def update(self, transaction_id: int, transaction: Transaction) -> Transaction:
        resp = self._request("PUT", f"/{transaction_id}", json=transaction.to_wire())
        return Transaction(**resp.json())

    def delete(self, transaction_id: int) -> None:
        self._request("DELETE", f"/{transaction_id}")

    def analyze_realized(self) -> Dict[str, Any]:
        """Realized-profit analysis, returned as the backend sends it."""
        return self._request("GET", "/analysis/realized").json()

    def analyze_detailed(self) -> Dict[str, Any]:
        return self._request("GET", "/analysis/detailed").json()

    def export_csv(self) -> str:
        return self._request("GET", "/export/csv").text
