"""QEMU virtual machine management."""
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import ProxmoxAPIError
from ..models import CloneOptions, GuestStatus, GuestSummary, Snapshot, TaskStatus
from ..tasks import DEFAULT_TASK_TIMEOUT
from ..validation import require, validate_node, validate_snapshot_name, validate_vmid
from .base import Service

TaskResult = Union[str, TaskStatus, None]


class VmService(Service):
    """
    Operations on QEMU guests.

    Subclasses manage other guest types by overriding ``guest_type``; the API
    paths differ only in that segment.
    """
    guest_type = 'qemu'
    label = 'VM'

    def _base(self, node: str, vmid) -> str:
        return f'nodes/{validate_node(node)}/{self.guest_type}/{validate_vmid(vmid)}'

    async def list(self, node: Optional[str] = None) -> List[GuestSummary]:
        """
        List guests of this type, on one node or across the cluster.

        :param node: Node name, all nodes when None
        :return: List of GuestSummary with node and type filled in
        """
        if node:
            node = validate_node(node)
            raw = await self.session.get(f'nodes/{node}/{self.guest_type}') or []
            for guest in raw:
                guest['node'] = node
                guest['type'] = self.guest_type
        else:
            resources = await self.session.get('cluster/resources', params={'type': 'vm'}) or []
            raw = [r for r in resources if r.get('type') == self.guest_type]
        guests = [GuestSummary.model_validate(guest) for guest in raw]
        self._logger.debug(f"Retrieved {len(guests)} {self.label}s")
        return guests

    async def status(self, node: str, vmid) -> GuestStatus:
        return await self.session.get(f'{self._base(node, vmid)}/status/current', response_type=GuestStatus)

    async def config(self, node: str, vmid) -> Dict[str, Any]:
        return await self.session.get(f'{self._base(node, vmid)}/config') or {}

    async def rrd_data(self, node: str, vmid, timeframe: str = 'hour', cf: str = 'AVERAGE') -> List[Dict[str, Any]]:
        """
        Get performance samples (cpu, memory, disk and network rates) for a guest.

        :param timeframe: hour, day, week, month or year
        :param cf: Consolidation function, AVERAGE or MAX
        """
        timeframe = require(timeframe, 'timeframe')
        params = {'timeframe': timeframe, 'cf': cf}
        return await self.session.get(f'{self._base(node, vmid)}/rrddata', params=params) or []

    async def update_config(self, node: str, vmid, values: Mapping[str, Any]) -> None:
        path = f'{self._base(node, vmid)}/config'
        try:
            await self.session.put(path, data=values)
            self._logger.info(f"Updated config of {self.label} {vmid}: {', '.join(values)}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to update config of {self.label} {vmid}: {e}")
            raise

    async def create(self, node: str, vmid, config: Mapping[str, Any], wait: bool = False,
                     timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        node = validate_node(node)
        vmid = validate_vmid(vmid)
        try:
            upid = await self.session.post(f'nodes/{node}/{self.guest_type}', data={'vmid': vmid, **config})
            self._logger.info(f"{self.label} {vmid} creation initiated, UPID: {upid}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create {self.label} {vmid}: {e}")
            raise
        return await self._task_result(node, upid, wait, timeout)

    async def delete(self, node: str, vmid, purge: bool = False, wait: bool = False,
                     timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        path = self._base(node, vmid)
        params = {'purge': True} if purge else None
        try:
            upid = await self.session.delete(path, params=params)
            self._logger.info(f"{self.label} {vmid} deletion initiated, UPID: {upid}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to delete {self.label} {vmid}: {e}")
            raise
        return await self._task_result(node, upid, wait, timeout)

    async def action(self, node: str, vmid, action: str, params: Optional[Mapping[str, Any]] = None,
                     wait: bool = False, timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        """
        Perform a power action (start, stop, shutdown, reboot, suspend, resume).

        :param node: Node name
        :param vmid: Guest ID
        :param action: Action name as used in the status/<action> path
        :param params: Extra form parameters for the action
        :param wait: Poll the task until completion and return its final TaskStatus
        :param timeout: Seconds to wait when wait is set
        :return: UPID, final TaskStatus when waiting, None if the action completed synchronously
        """
        path = f'{self._base(node, vmid)}/status/{action}'
        try:
            upid = await self.session.post(path, data=params or {})
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to perform {self.label} action '{action}' on {vmid}: {e}")
            raise
        if upid:
            self._logger.info(f"{self.label} {vmid} action '{action}' initiated, UPID: {upid}")
        else:
            self._logger.info(f"{self.label} {vmid} action '{action}' completed synchronously")
        return await self._task_result(node, upid, wait, timeout)

    async def start(self, node: str, vmid, wait: bool = False) -> TaskResult:
        return await self.action(node, vmid, 'start', wait=wait)

    async def stop(self, node: str, vmid, wait: bool = False) -> TaskResult:
        return await self.action(node, vmid, 'stop', wait=wait)

    async def shutdown(self, node: str, vmid, timeout: Optional[int] = None, force_stop: bool = False,
                       wait: bool = False) -> TaskResult:
        params = {}
        if timeout:
            params['timeout'] = timeout
        if force_stop:
            params['forceStop'] = True
        return await self.action(node, vmid, 'shutdown', params, wait=wait)

    async def reboot(self, node: str, vmid, wait: bool = False) -> TaskResult:
        return await self.action(node, vmid, 'reboot', wait=wait)

    async def suspend(self, node: str, vmid, wait: bool = False) -> TaskResult:
        return await self.action(node, vmid, 'suspend', wait=wait)

    async def resume(self, node: str, vmid, wait: bool = False) -> TaskResult:
        return await self.action(node, vmid, 'resume', wait=wait)

    async def snapshots(self, node: str, vmid) -> List[Snapshot]:
        return await self.session.get(f'{self._base(node, vmid)}/snapshot', response_type=List[Snapshot]) or []

    async def create_snapshot(self, node: str, vmid, name: str, description: Optional[str] = None,
                              include_memory: bool = False, wait: bool = False) -> TaskResult:
        name = validate_snapshot_name(name)
        data = {'snapname': name, 'description': description}
        if include_memory and self.guest_type == 'qemu':
            data['vmstate'] = True
        upid = await self.session.post(f'{self._base(node, vmid)}/snapshot', data=data)
        self._logger.info(f"Snapshot '{name}' of {self.label} {vmid} initiated, UPID: {upid}")
        return await self._task_result(node, upid, wait)

    async def delete_snapshot(self, node: str, vmid, name: str, force: bool = False,
                              wait: bool = False) -> TaskResult:
        name = validate_snapshot_name(name)
        params = {'force': True} if force else None
        upid = await self.session.delete(f'{self._base(node, vmid)}/snapshot/{name}', params=params)
        return await self._task_result(node, upid, wait)

    async def rollback_snapshot(self, node: str, vmid, name: str, wait: bool = False) -> TaskResult:
        name = validate_snapshot_name(name)
        upid = await self.session.post(f'{self._base(node, vmid)}/snapshot/{name}/rollback')
        self._logger.info(f"Rollback of {self.label} {vmid} to '{name}' initiated, UPID: {upid}")
        return await self._task_result(node, upid, wait)

    async def clone(self, node: str, vmid, options: CloneOptions, wait: bool = False,
                    timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        validate_vmid(options.newid)
        try:
            upid = await self.session.post(f'{self._base(node, vmid)}/clone', data=options)
            self._logger.info(f"Clone of {self.label} {vmid} to {options.newid} initiated, UPID: {upid}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to clone {self.label} {vmid}: {e}")
            raise
        return await self._task_result(node, upid, wait, timeout)

    async def migrate(self, node: str, vmid, target: str, online: bool = False, wait: bool = False,
                      timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        target = validate_node(target)
        upid = await self.session.post(f'{self._base(node, vmid)}/migrate',
                                       data={'target': target, 'online': online})
        self._logger.info(f"Migration of {self.label} {vmid} to {target} initiated, UPID: {upid}")
        return await self._task_result(node, upid, wait, timeout)
