"""Cluster node queries and power actions."""
from typing import Any, Dict, List, Optional

from ..exceptions import ProxmoxAPIError
from ..models import Node, NodeStatus
from ..validation import require, validate_node
from .base import Service


class NodeService(Service):

    async def list(self) -> List[Node]:
        nodes = await self.session.get('nodes', response_type=List[Node]) or []
        self._logger.debug(f"Retrieved {len(nodes)} nodes")
        return nodes

    async def get(self, node: str) -> Optional[Node]:
        """Return the cluster's summary entry for a node, None when it is not a member."""
        node = validate_node(node)
        for entry in await self.list():
            if entry.node == node:
                return entry
        return None

    async def is_online(self, node: str) -> bool:
        entry = await self.get(node)
        return entry is not None and entry.online

    async def status(self, node: str) -> NodeStatus:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/status', response_type=NodeStatus)

    async def version(self, node: str) -> Dict[str, Any]:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/version') or {}

    async def subscription(self, node: str) -> Dict[str, Any]:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/subscription') or {}

    async def rrd_data(self, node: str, timeframe: str = 'hour', cf: str = 'AVERAGE') -> List[Dict[str, Any]]:
        """
        Get performance samples for a node.

        :param node: Node name
        :param timeframe: hour, day, week, month or year
        :param cf: Consolidation function, AVERAGE or MAX
        :return: List of samples, one dict per point in time
        """
        node = validate_node(node)
        timeframe = require(timeframe, 'timeframe')
        params = {'timeframe': timeframe, 'cf': cf}
        return await self.session.get(f'nodes/{node}/rrddata', params=params) or []

    async def reboot(self, node: str) -> None:
        await self._command(node, 'reboot')

    async def shutdown(self, node: str) -> None:
        await self._command(node, 'shutdown')

    async def _command(self, node: str, command: str) -> None:
        node = validate_node(node)
        try:
            await self.session.post(f'nodes/{node}/status', data={'command': command})
            self._logger.info(f"Node {node}: '{command}' requested")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to {command} node {node}: {e}")
            raise
