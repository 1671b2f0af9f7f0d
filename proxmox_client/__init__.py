"""Asyncio client for the Proxmox VE REST API."""
from .client import ProxmoxClient, load_client
from .config import ConnectionConfig, load_config
from .exceptions import (ProxmoxAPIError, ProxmoxAuthError, ProxmoxConfigError, ProxmoxConnectionError,
                         ProxmoxError, ProxmoxValidationError, TaskTimeoutError)
from .models import ApiEnvelope, SessionState, TaskStatus
from .session import ProxmoxSession
from .tasks import TaskPoller

__version__ = '0.1.0'

__all__ = [
    'ApiEnvelope',
    'ConnectionConfig',
    'ProxmoxAPIError',
    'ProxmoxAuthError',
    'ProxmoxClient',
    'ProxmoxConfigError',
    'ProxmoxConnectionError',
    'ProxmoxError',
    'ProxmoxSession',
    'ProxmoxValidationError',
    'SessionState',
    'TaskPoller',
    'TaskStatus',
    'TaskTimeoutError',
    'load_client',
    'load_config',
]
