"""Waiting on asynchronous server side tasks (UPIDs)."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from .exceptions import TaskTimeoutError
from .models import TaskLogLine, TaskStatus
from .session import ProxmoxSession
from .validation import require, validate_node

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_TASK_TIMEOUT = 3600.0


def _from_list_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    entry = dict(entry)
    status = entry.get('status')
    if entry.get('endtime') and status not in ('running', 'stopped'):
        entry['exitstatus'] = status
        entry['status'] = 'stopped'
    elif not status:
        entry['status'] = 'running'
    return entry


class TaskPoller:
    """Query and wait for tasks started by mutating API calls."""

    def __init__(self, session: ProxmoxSession, poll_interval: float = DEFAULT_POLL_INTERVAL,
                 logger: Optional[logging.Logger] = None):
        if poll_interval <= 0:
            raise ValueError('poll_interval must be positive')
        self.session = session
        self.poll_interval = poll_interval
        self._logger = logger or logging.getLogger(__name__)

    async def get_status(self, node: str, upid: str) -> TaskStatus:
        node = validate_node(node)
        upid = require(upid, 'upid')
        return await self.session.get(f'nodes/{node}/tasks/{upid}/status', response_type=TaskStatus)

    async def wait(self, node: str, upid: str, timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskStatus:
        """
        Poll a node task until it is no longer running.

        The first status check happens immediately, then one every poll_interval
        seconds. A failed status check ends the wait with that error. Cancelling
        the calling task stops polling at once.

        :param node: Node name
        :param upid: Unique Process ID
        :param timeout: Seconds to wait before giving up
        :return: The final TaskStatus, successful or not
        :raises TaskTimeoutError: The task was still running when the timeout elapsed
        """
        node = validate_node(node)
        upid = require(upid, 'upid')
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        self._logger.info(f"Waiting for task {upid} on node {node}")

        while True:
            status = await self.get_status(node, upid)
            if not status.running:
                if status.successful:
                    self._logger.info(f"Task {upid} completed successfully")
                else:
                    self._logger.warning(f"Task {upid} finished with status {status.status!r}, "
                                         f"exitstatus {status.exitstatus!r}")
                return status

            remaining = deadline - loop.time()
            if remaining <= 0:
                self._logger.warning(f"Task {upid} did not complete within {timeout} seconds")
                raise TaskTimeoutError(upid, timeout)
            self._logger.debug(f"Task {upid} still running...")
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def log(self, node: str, upid: str, start: int = 0, limit: int = 500) -> List[TaskLogLine]:
        node = validate_node(node)
        upid = require(upid, 'upid')
        return await self.session.get(f'nodes/{node}/tasks/{upid}/log',
                                      params={'start': start, 'limit': limit},
                                      response_type=List[TaskLogLine]) or []

    async def stop(self, node: str, upid: str) -> None:
        """Ask the server to abort a running task."""
        node = validate_node(node)
        upid = require(upid, 'upid')
        self._logger.info(f"Stopping task {upid} on node {node}")
        await self.session.delete(f'nodes/{node}/tasks/{upid}')

    async def list(self, node: str, typefilter: Optional[str] = None, vmid: Optional[int] = None,
                   limit: Optional[int] = None) -> List[TaskStatus]:
        """
        List recent tasks of a node, newest first.

        The list endpoint reports a finished task's exit status in ``status``;
        entries are converted to the shape of the status endpoint, so
        ``running`` and ``successful`` mean the same for both.
        """
        node = validate_node(node)
        params = {'typefilter': typefilter, 'vmid': vmid, 'limit': limit}
        entries = await self.session.get(f'nodes/{node}/tasks', params=params) or []
        return [TaskStatus.model_validate(_from_list_entry(entry)) for entry in entries]
