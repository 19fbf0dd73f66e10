import logging
from datetime import datetime

import requests

from golddesk.models import HealthStatus

logger = logging.getLogger(__name__)

LIVENESS_PATH = "/transactions"


class HealthProbe:
    """Single bounded liveness check against the backend API."""

    def __init__(self, session: requests.Session, base_url: str, timeout: float = 5.0):
        """
        Args:
            session: Shared HTTP session (owned by the shell)
            base_url: API base, e.g. http://localhost:8080/api
            timeout: Upper bound in seconds for one probe
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}{LIVENESS_PATH}"

    def check(self) -> bool:
        """
        Probe the backend once.

        Returns:
            True if the liveness endpoint answered with a 2xx status within the
            timeout, False on any other outcome. Never raises.
        """
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            if 200 <= response.status_code < 300:
                return True
            logger.debug(f"Health check failed with status {response.status_code}")
        except requests.exceptions.Timeout:
            logger.debug(f"Health check timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError:
            logger.debug("Health check connection error. Backend likely not up.")
        except Exception as e:
            logger.debug(f"Unexpected error during health check: {e}")
        return False

    def status(self) -> HealthStatus:
        healthy = self.check()
        return HealthStatus(healthy=healthy, checked_at=datetime.now())
