"""Node network interfaces, DNS, hosts file and firewall rules."""
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import ProxmoxAPIError, ProxmoxValidationError
from ..models import DnsConfig, FirewallRule, FirewallRuleOptions, NetworkInterface, NetworkInterfaceOptions
from ..validation import require, validate_node
from .base import Service


class NetworkService(Service):
    """
    Network configuration of a node.

    Interface changes are staged by the server; call ``apply`` to activate them
    or ``revert`` to discard them.
    """

    async def interfaces(self, node: str, interface_type: Optional[str] = None) -> List[NetworkInterface]:
        node = validate_node(node)
        params = {'type': interface_type} if interface_type else None
        return await self.session.get(f'nodes/{node}/network', params=params,
                                      response_type=List[NetworkInterface]) or []

    async def bridges(self, node: str) -> List[NetworkInterface]:
        return await self.interfaces(node, 'bridge')

    async def vlans(self, node: str) -> List[NetworkInterface]:
        return await self.interfaces(node, 'vlan')

    async def bonds(self, node: str) -> List[NetworkInterface]:
        return await self.interfaces(node, 'bond')

    async def create_vlan(self, node: str, iface: str, vlan_id: int, raw_device: str,
                          options: Optional[NetworkInterfaceOptions] = None) -> None:
        """
        Stage a VLAN interface.

        :param iface: Interface name, e.g. 'vlan100' or 'eno1.100'
        :param vlan_id: VLAN tag, 1 to 4094
        :param raw_device: Parent interface carrying the tagged traffic
        :param options: Further settings such as address or autostart
        """
        vlan_id = int(vlan_id)
        if not 1 <= vlan_id <= 4094:
            raise ProxmoxValidationError(f"VLAN ID must be between 1 and 4094, got {vlan_id}")
        raw_device = require(raw_device, 'raw_device')
        options = (options or NetworkInterfaceOptions()).model_copy(
            update={'type': 'vlan', 'vlan_id': vlan_id, 'vlan_raw_device': raw_device})
        await self.create_interface(node, iface, options)

    async def create_bond(self, node: str, iface: str, slaves: Sequence[str], bond_mode: str = 'balance-rr',
                          options: Optional[NetworkInterfaceOptions] = None) -> None:
        """
        Stage a bond over the given physical interfaces.

        :param slaves: Member interfaces, sent space separated
        :param bond_mode: balance-rr, active-backup, 802.3ad, ...
        """
        if isinstance(slaves, str):
            slaves = slaves.split()
        if not slaves:
            raise ProxmoxValidationError("A bond needs at least one slave interface")
        options = (options or NetworkInterfaceOptions()).model_copy(
            update={'type': 'bond', 'slaves': ' '.join(slaves), 'bond_mode': require(bond_mode, 'bond_mode')})
        await self.create_interface(node, iface, options)

    async def interface(self, node: str, iface: str) -> NetworkInterface:
        node = validate_node(node)
        iface = require(iface, 'iface')
        data = await self.session.get(f'nodes/{node}/network/{iface}') or {}
        # the single interface endpoint does not echo the name back
        data.setdefault('iface', iface)
        return NetworkInterface.model_validate(data)

    async def create_interface(self, node: str, iface: str, options: NetworkInterfaceOptions) -> None:
        node = validate_node(node)
        iface = require(iface, 'iface')
        data = {**options.to_params(), 'iface': iface}
        try:
            await self.session.post(f'nodes/{node}/network', data=data)
            self._logger.info(f"Interface {iface} staged on node {node}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create interface {iface} on node {node}: {e}")
            raise

    async def update_interface(self, node: str, iface: str, options: NetworkInterfaceOptions) -> None:
        node = validate_node(node)
        iface = require(iface, 'iface')
        data = options.to_params()
        data.pop('iface', None)
        try:
            await self.session.put(f'nodes/{node}/network/{iface}', data=data)
            self._logger.info(f"Interface {iface} update staged on node {node}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to update interface {iface} on node {node}: {e}")
            raise

    async def delete_interface(self, node: str, iface: str) -> None:
        node = validate_node(node)
        iface = require(iface, 'iface')
        await self.session.delete(f'nodes/{node}/network/{iface}')
        self._logger.info(f"Interface {iface} removal staged on node {node}")

    async def apply(self, node: str, wait: bool = False):
        """Activate staged interface changes; returns the reload task's UPID."""
        node = validate_node(node)
        upid = await self.session.put(f'nodes/{node}/network')
        self._logger.info(f"Applying network changes on node {node}")
        return await self._task_result(node, upid, wait)

    async def revert(self, node: str) -> None:
        node = validate_node(node)
        await self.session.delete(f'nodes/{node}/network')
        self._logger.info(f"Discarded staged network changes on node {node}")

    async def dns(self, node: str) -> DnsConfig:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/dns', response_type=DnsConfig)

    async def update_dns(self, node: str, config: DnsConfig) -> None:
        node = validate_node(node)
        await self.session.put(f'nodes/{node}/dns', data=config)
        self._logger.info(f"DNS settings updated on node {node}")

    async def hosts(self, node: str) -> Dict[str, Any]:
        """Get the node's /etc/hosts; ``data`` holds the text and ``digest`` its checksum."""
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/hosts') or {}

    async def update_hosts(self, node: str, content: str, digest: Optional[str] = None) -> None:
        """
        Replace the node's /etc/hosts.

        :param content: Complete new file content
        :param digest: Digest from hosts(); the server refuses the write if the file changed since
        """
        node = validate_node(node)
        if content is None:
            raise ProxmoxValidationError("Hosts file content is required")
        await self.session.post(f'nodes/{node}/hosts', data={'data': content, 'digest': digest})
        self._logger.info(f"Hosts file updated on node {node}")

    async def firewall_rules(self, node: str) -> List[FirewallRule]:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/firewall/rules', response_type=List[FirewallRule]) or []

    async def firewall_rule(self, node: str, pos: int) -> FirewallRule:
        node = validate_node(node)
        return await self.session.get(f'nodes/{node}/firewall/rules/{int(pos)}', response_type=FirewallRule)

    async def create_firewall_rule(self, node: str, rule: FirewallRuleOptions) -> None:
        """
        Add a firewall rule to a node.

        :param node: Node name
        :param rule: Rule definition; ``type`` and ``action`` are required
        """
        node = validate_node(node)
        require(rule.type, 'rule type')
        require(rule.action, 'rule action')
        try:
            await self.session.post(f'nodes/{node}/firewall/rules', data=rule)
            self._logger.info(f"Firewall rule '{rule.action}' ({rule.type}) added on node {node}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to add firewall rule on node {node}: {e}")
            raise

    async def update_firewall_rule(self, node: str, pos: int, rule: FirewallRuleOptions) -> None:
        node = validate_node(node)
        await self.session.put(f'nodes/{node}/firewall/rules/{int(pos)}', data=rule)
        self._logger.info(f"Firewall rule {pos} updated on node {node}")

    async def delete_firewall_rule(self, node: str, pos: int) -> None:
        node = validate_node(node)
        await self.session.delete(f'nodes/{node}/firewall/rules/{int(pos)}')
        self._logger.info(f"Firewall rule {pos} deleted on node {node}")
