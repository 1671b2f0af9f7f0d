"""Shared plumbing for the per-resource services."""
import logging
from typing import Optional, Union

from ..models import TaskStatus
from ..session import ProxmoxSession
from ..tasks import DEFAULT_TASK_TIMEOUT, TaskPoller


class Service:
    """
    Base class for resource services.

    Operations that start a server side task return its UPID, or the final
    TaskStatus when called with ``wait=True``.
    """

    def __init__(self, session: ProxmoxSession, tasks: Optional[TaskPoller] = None,
                 logger: Optional[logging.Logger] = None):
        self.session = session
        self.tasks = tasks or TaskPoller(session)
        self._logger = logger or logging.getLogger(type(self).__module__)

    async def _task_result(self, node: str, upid: Optional[str], wait: bool,
                           timeout: float = DEFAULT_TASK_TIMEOUT) -> Union[str, TaskStatus, None]:
        if not upid:
            return None
        if wait:
            return await self.tasks.wait(node, upid, timeout)
        return upid
