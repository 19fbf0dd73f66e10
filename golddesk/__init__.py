from .probe import HealthProbe
from .supervisor import BackendSupervisor, BackendProcess, BackendStartupError
from .frontend import FrontendLoader
from .bridge import NativeBridge, JsApi
from .client import TransactionClient, BackendUnavailableError
from .models import SupervisorState, HealthStatus, BridgeRequest, BridgeResponse, Transaction

__all__ = [
    'HealthProbe',
    'BackendSupervisor',
    'BackendProcess',
    'BackendStartupError',
    'FrontendLoader',
    'NativeBridge',
    'JsApi',
    'TransactionClient',
    'BackendUnavailableError',
    'SupervisorState',
    'HealthStatus',
    'BridgeRequest',
    'BridgeResponse',
    'Transaction',
]
