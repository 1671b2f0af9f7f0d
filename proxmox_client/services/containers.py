"""LXC container management."""
from typing import Any, Dict, List

from ..tasks import DEFAULT_TASK_TIMEOUT
from ..validation import require, validate_node
from .vms import TaskResult, VmService


class ContainerService(VmService):
    """
    Operations on LXC containers.

    Inherits the guest operations of VmService; containers have no memory
    snapshots and are resized per mount point.
    """
    guest_type = 'lxc'
    label = 'Container'

    async def create(self, node: str, vmid, config: Dict[str, Any], wait: bool = False,
                     timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskResult:
        """
        Create a container.

        :param node: Node name
        :param vmid: New container ID
        :param config: Container settings; must include ostemplate (e.g., 'local:vztmpl/debian-12.tar.zst')
        :param wait: Wait for the creation task to finish
        :param timeout: Seconds to wait when wait is set
        """
        require(config.get('ostemplate'), 'ostemplate')
        return await super().create(node, vmid, config, wait=wait, timeout=timeout)

    async def resize(self, node: str, vmid, disk: str, size: str, wait: bool = False) -> TaskResult:
        """
        Grow a container volume.

        :param disk: Mount point key, e.g., 'rootfs' or 'mp0'
        :param size: New size ('16G') or increment ('+2G')
        """
        disk = require(disk, 'disk')
        size = require(size, 'size')
        upid = await self.session.put(f'{self._base(node, vmid)}/resize', data={'disk': disk, 'size': size})
        self._logger.info(f"Resize of {self.label} {vmid} {disk} to {size} requested")
        return await self._task_result(node, upid, wait)

    async def interfaces(self, node: str, vmid) -> List[Dict[str, Any]]:
        """Network interfaces of a running container, as reported by the host."""
        return await self.session.get(f'{self._base(node, vmid)}/interfaces') or []

    async def available_templates(self, node: str) -> List[Dict[str, Any]]:
        """List appliance templates available for download to a node."""
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/aplinfo') or []
