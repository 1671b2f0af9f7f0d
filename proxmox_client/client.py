"""Entry point bundling the session, the task poller and the resource services."""
import logging
from typing import Any, Dict, Optional

import aiohttp

from .config import ConnectionConfig, load_config
from .models import SessionState, TaskStatus
from .services import (AccessService, BackupService, ContainerService, NetworkService, NodeService,
                       StorageService, VmService)
from .session import ProxmoxSession
from .tasks import DEFAULT_POLL_INTERVAL, DEFAULT_TASK_TIMEOUT, TaskPoller

logger = logging.getLogger(__name__)


class ProxmoxClient:
    """
    Proxmox VE API client.

    Usage::

        async with ProxmoxClient(config) as client:
            for vm in await client.vms.list():
                print(vm.vmid, vm.name, vm.status)

    Entering the context authenticates; leaving it closes the session.
    """

    def __init__(self, config: ConnectionConfig, session: Optional[aiohttp.ClientSession] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL, logger: Optional[logging.Logger] = None):
        """
        :param config: Connection settings
        :param session: Optional aiohttp session owned by the caller
        :param poll_interval: Seconds between task status checks
        :param logger: Logger shared by the session, the poller and all services
        """
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self.session = ProxmoxSession(config, session=session, logger=logger)
        self.tasks = TaskPoller(self.session, poll_interval=poll_interval, logger=logger)

        services = dict(session=self.session, tasks=self.tasks, logger=logger)
        self.nodes = NodeService(**services)
        self.vms = VmService(**services)
        self.containers = ContainerService(**services)
        self.storage = StorageService(**services)
        self.network = NetworkService(**services)
        self.backup = BackupService(**services)
        self.access = AccessService(**services)

    async def __aenter__(self) -> 'ProxmoxClient':
        try:
            await self.authenticate()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def authenticate(self) -> SessionState:
        return await self.session.authenticate()

    async def version(self) -> Dict[str, Any]:
        """Server version info (version, release, repoid)."""
        info = await self.session.get('version') or {}
        self._logger.debug(f"Connected to Proxmox VE {info.get('version', 'unknown')}")
        return info

    async def wait_for_task(self, node: str, upid: str, timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskStatus:
        return await self.tasks.wait(node, upid, timeout)

    async def close(self) -> None:
        await self.session.close()


def load_client(config_path: Optional[str] = None, secret_path: Optional[str] = None,
                **kwargs) -> ProxmoxClient:
    """
    Build a client from a YAML config file (see load_config).

    The client is not authenticated yet; use it as an async context manager or
    call authenticate().

    :param config_path: YAML config file
    :param secret_path: Optional file holding the password or API token
    :param kwargs: Passed on to ProxmoxClient
    :return: ProxmoxClient
    """
    config = load_config(config_path, secret_path)
    logger.info(f"Creating Proxmox client for {config.host}:{config.port}")
    return ProxmoxClient(config, **kwargs)
