from typing import List
from unittest.mock import AsyncMock, patch

import pytest

from proxmox_client.client import ProxmoxClient
from proxmox_client.exceptions import ProxmoxAPIError, ProxmoxAuthError, ProxmoxValidationError
from proxmox_client.models import (AclEntry, BackupJob, BackupJobOptions, CloneOptions, DnsConfig, FirewallRule,
                                   FirewallRuleOptions, GuestStatus, Node, NodeStatus, NetworkInterfaceOptions,
                                   Snapshot, StorageContent, StorageOptions, StorageUsage, TaskStatus, TokenSecret,
                                   UserOptions)
from proxmox_client.services import (AccessService, BackupService, ContainerService, NetworkService, NodeService,
                                     StorageService, VmService)

UPID = 'UPID:pve1:0003A1B2:0123ABCD:65A0B1C2:qmstart:100:root@pam:'


class TestNodeService:

    async def test_get_and_is_online(self, api):
        api.get.return_value = [Node(node='pve1', status='online'), Node(node='pve2', status='offline')]
        nodes = NodeService(api)

        assert (await nodes.get('pve2')).status == 'offline'
        assert await nodes.get('pve9') is None
        assert await nodes.is_online('pve1')
        assert not await nodes.is_online('pve2')
        api.get.assert_awaited_with('nodes', response_type=List[Node])

    async def test_status(self, api):
        api.get.return_value = NodeStatus(uptime=3600)
        nodes = NodeService(api)

        status = await nodes.status('pve1')

        assert status.uptime_delta.total_seconds() == 3600
        api.get.assert_awaited_once_with('nodes/pve1/status', response_type=NodeStatus)

    async def test_reboot(self, api):
        await NodeService(api).reboot('pve1')

        api.post.assert_awaited_once_with('nodes/pve1/status', data={'command': 'reboot'})

    async def test_rrd_data(self, api):
        api.get.return_value = [{'time': 1705029060, 'cpu': 0.05}]

        samples = await NodeService(api).rrd_data('pve1', timeframe='day')

        assert samples[0]['cpu'] == 0.05
        api.get.assert_awaited_once_with('nodes/pve1/rrddata', params={'timeframe': 'day', 'cf': 'AVERAGE'})

    async def test_invalid_node_name(self, api):
        with pytest.raises(ProxmoxValidationError, match='Invalid node name'):
            await NodeService(api).status('pve1/../../etc')
        api.get.assert_not_awaited()


class TestVmService:

    async def test_list_on_node_fills_node_and_type(self, api):
        api.get.return_value = [{'vmid': 100, 'name': 'web-01', 'status': 'running'}]

        vms = await VmService(api).list('pve1')

        assert vms[0].vmid == 100
        assert vms[0].node == 'pve1'
        assert vms[0].type == 'qemu'
        api.get.assert_awaited_once_with('nodes/pve1/qemu')

    async def test_list_across_cluster_keeps_only_vms(self, api):
        api.get.return_value = [
            {'type': 'qemu', 'vmid': 100, 'node': 'pve1', 'status': 'running'},
            {'type': 'lxc', 'vmid': 200, 'node': 'pve1', 'status': 'stopped'},
        ]

        vms = await VmService(api).list()
        containers = await ContainerService(api).list()

        assert [vm.vmid for vm in vms] == [100]
        assert [ct.vmid for ct in containers] == [200]
        api.get.assert_awaited_with('cluster/resources', params={'type': 'vm'})

    async def test_status(self, api):
        api.get.return_value = GuestStatus(status='running')

        status = await VmService(api).status('pve1', 100)

        assert status.running
        api.get.assert_awaited_once_with('nodes/pve1/qemu/100/status/current', response_type=GuestStatus)

    async def test_start_returns_upid(self, api):
        api.post.return_value = UPID

        upid = await VmService(api).start('pve1', '100')

        assert upid == UPID
        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/status/start', data={})

    async def test_start_and_wait(self, api, tasks):
        api.post.return_value = UPID
        tasks.wait.return_value = TaskStatus(upid=UPID, status='stopped', exitstatus='OK')

        status = await VmService(api, tasks).start('pve1', 100, wait=True)

        assert status.successful
        tasks.wait.assert_awaited_once_with('pve1', UPID, 3600.0)

    async def test_synchronous_action_returns_none(self, api, tasks):
        api.post.return_value = None

        assert await VmService(api, tasks).resume('pve1', 100, wait=True) is None
        tasks.wait.assert_not_awaited()

    async def test_shutdown_options(self, api):
        await VmService(api).shutdown('pve1', 100, timeout=120, force_stop=True)

        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/status/shutdown',
                                          data={'timeout': 120, 'forceStop': True})

    async def test_update_config(self, api):
        await VmService(api).update_config('pve1', 100, {'memory': 4096, 'cores': 2})

        api.put.assert_awaited_once_with('nodes/pve1/qemu/100/config', data={'memory': 4096, 'cores': 2})

    async def test_update_config_error_is_reraised(self, api):
        api.put.side_effect = ProxmoxAPIError('HTTP 500 Internal Server Error', status_code=500)

        with pytest.raises(ProxmoxAPIError):
            await VmService(api).update_config('pve1', 100, {'memory': 4096})

    async def test_create_snapshot_with_memory(self, api):
        api.post.return_value = UPID

        await VmService(api).create_snapshot('pve1', 100, 'before-upgrade', 'pre 8.2', include_memory=True)

        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/snapshot',
                                          data={'snapname': 'before-upgrade', 'description': 'pre 8.2',
                                                'vmstate': True})

    async def test_container_snapshot_ignores_memory(self, api):
        await ContainerService(api).create_snapshot('pve1', 200, 'nightly', include_memory=True)

        api.post.assert_awaited_once_with('nodes/pve1/lxc/200/snapshot',
                                          data={'snapname': 'nightly', 'description': None})

    @pytest.mark.parametrize('name', ['', '1st', 'with space', 'semi;colon'])
    async def test_invalid_snapshot_names(self, api, name):
        with pytest.raises(ProxmoxValidationError):
            await VmService(api).create_snapshot('pve1', 100, name)
        api.post.assert_not_awaited()

    async def test_snapshots(self, api):
        api.get.return_value = [Snapshot(name='before-upgrade'), Snapshot(name='current')]

        snapshots = await VmService(api).snapshots('pve1', 100)

        assert [s.name for s in snapshots if not s.current] == ['before-upgrade']
        api.get.assert_awaited_once_with('nodes/pve1/qemu/100/snapshot', response_type=List[Snapshot])

    async def test_rollback_and_delete_snapshot(self, api):
        vms = VmService(api)

        await vms.rollback_snapshot('pve1', 100, 'before-upgrade')
        await vms.delete_snapshot('pve1', 100, 'before-upgrade', force=True)

        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/snapshot/before-upgrade/rollback')
        api.delete.assert_awaited_once_with('nodes/pve1/qemu/100/snapshot/before-upgrade', params={'force': True})

    async def test_clone(self, api):
        api.post.return_value = UPID
        options = CloneOptions(newid=101, name='web-02', full=True)

        assert await VmService(api).clone('pve1', 100, options) == UPID

        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/clone', data=options)

    async def test_clone_rejects_invalid_target_id(self, api):
        with pytest.raises(ProxmoxValidationError):
            await VmService(api).clone('pve1', 100, CloneOptions(newid=0))
        api.post.assert_not_awaited()

    async def test_delete_with_purge(self, api):
        await VmService(api).delete('pve1', 100, purge=True)

        api.delete.assert_awaited_once_with('nodes/pve1/qemu/100', params={'purge': True})

    async def test_migrate(self, api):
        await VmService(api).migrate('pve1', 100, 'pve2', online=True)

        api.post.assert_awaited_once_with('nodes/pve1/qemu/100/migrate', data={'target': 'pve2', 'online': True})

    async def test_rrd_data(self, api):
        api.get.return_value = [{'time': 1705029000, 'cpu': 0.12, 'netin': 1024.0}]

        samples = await VmService(api).rrd_data('pve1', 100, timeframe='week', cf='MAX')

        assert samples[0]['netin'] == 1024.0
        api.get.assert_awaited_once_with('nodes/pve1/qemu/100/rrddata', params={'timeframe': 'week', 'cf': 'MAX'})

    async def test_rrd_data_requires_timeframe(self, api):
        with pytest.raises(ProxmoxValidationError, match='timeframe'):
            await VmService(api).rrd_data('pve1', 100, timeframe=' ')
        api.get.assert_not_awaited()

    @pytest.mark.parametrize('vmid', ['', 'abc', 0, -5])
    async def test_invalid_vmid(self, api, vmid):
        with pytest.raises(ProxmoxValidationError):
            await VmService(api).start('pve1', vmid)
        api.post.assert_not_awaited()


class TestContainerService:

    async def test_create(self, api):
        api.post.return_value = UPID
        config = {'ostemplate': 'local:vztmpl/debian-12-standard_12.2-1_amd64.tar.zst', 'hostname': 'ct200'}

        await ContainerService(api).create('pve1', 200, config)

        api.post.assert_awaited_once_with('nodes/pve1/lxc', data={'vmid': 200, **config})

    async def test_create_requires_template(self, api):
        with pytest.raises(ProxmoxValidationError, match='ostemplate'):
            await ContainerService(api).create('pve1', 200, {'hostname': 'ct200'})

    async def test_start_uses_lxc_path(self, api):
        await ContainerService(api).start('pve1', 200)

        api.post.assert_awaited_once_with('nodes/pve1/lxc/200/status/start', data={})

    async def test_resize(self, api):
        await ContainerService(api).resize('pve1', 200, 'rootfs', '+2G')

        api.put.assert_awaited_once_with('nodes/pve1/lxc/200/resize', data={'disk': 'rootfs', 'size': '+2G'})

    async def test_rrd_data_uses_lxc_path(self, api):
        await ContainerService(api).rrd_data('pve1', 200)

        api.get.assert_awaited_once_with('nodes/pve1/lxc/200/rrddata', params={'timeframe': 'hour', 'cf': 'AVERAGE'})


class TestStorageService:

    async def test_create(self, api):
        await StorageService(api).create('backups', StorageOptions(type='dir', path='/mnt/backups',
                                                                   content='backup'))

        api.post.assert_awaited_once_with('storage', data={'type': 'dir', 'path': '/mnt/backups',
                                                           'content': 'backup', 'storage': 'backups'})

    async def test_update_drops_fixed_fields(self, api):
        await StorageService(api).update('backups', StorageOptions(type='dir', prune_backups='keep-last=3'))

        api.put.assert_awaited_once_with('storage/backups', data={'prune-backups': 'keep-last=3'})

    async def test_invalid_storage_id(self, api):
        with pytest.raises(ProxmoxValidationError):
            await StorageService(api).delete('local storage')
        api.delete.assert_not_awaited()

    async def test_content(self, api):
        api.get.return_value = [StorageContent(volid='local:iso/debian-12.iso', content='iso')]

        items = await StorageService(api).iso_images('pve1', 'local')

        assert items[0].volid == 'local:iso/debian-12.iso'
        api.get.assert_awaited_once_with('nodes/pve1/storage/local/content', params={'content': 'iso'},
                                         response_type=List[StorageContent])

    async def test_usage_of_single_storage(self, api):
        api.get.return_value = {'type': 'dir', 'total': 100, 'used': 40, 'avail': 60, 'active': 1}

        usage = await StorageService(api).usage('pve1', 'local')

        assert usage[0].storage == 'local'
        assert usage[0].usage == 0.4
        api.get.assert_awaited_once_with('nodes/pve1/storage/local/status')

    async def test_usage_of_node(self, api):
        await StorageService(api).usage('pve1')

        api.get.assert_awaited_once_with('nodes/pve1/storage', response_type=List[StorageUsage])

    async def test_delete_volume_quotes_volid(self, api):
        await StorageService(api).delete_volume('pve1', 'local', 'local:iso/debian-12.iso')

        api.delete.assert_awaited_once_with('nodes/pve1/storage/local/content/local%3Aiso%2Fdebian-12.iso')

    async def test_create_volume(self, api):
        api.post.return_value = 'local-lvm:vm-100-disk-1'

        volid = await StorageService(api).create_volume('pve1', 'local-lvm', 100, 'vm-100-disk-1', '32G')

        assert volid == 'local-lvm:vm-100-disk-1'
        api.post.assert_awaited_once_with('nodes/pve1/storage/local-lvm/content',
                                          data={'vmid': 100, 'filename': 'vm-100-disk-1', 'size': '32G',
                                                'format': None})

    async def test_create_volume_requires_size(self, api):
        with pytest.raises(ProxmoxValidationError, match='size'):
            await StorageService(api).create_volume('pve1', 'local', 100, 'vm-100-disk-1.qcow2', '')
        api.post.assert_not_awaited()

    async def test_copy_volume_waits_for_task(self, api, tasks):
        api.post.return_value = UPID
        tasks.wait.return_value = TaskStatus(upid=UPID, status='stopped', exitstatus='OK')

        status = await StorageService(api, tasks).copy_volume('pve1', 'local', 'local:100/vm-100-disk-0.qcow2',
                                                              'local:101/vm-101-disk-0.qcow2', target_node='pve2',
                                                              wait=True)

        assert status.successful
        api.post.assert_awaited_once_with('nodes/pve1/storage/local/content/local%3A100%2Fvm-100-disk-0.qcow2',
                                          data={'target': 'local:101/vm-101-disk-0.qcow2', 'target_node': 'pve2'})
        tasks.wait.assert_awaited_once_with('pve1', UPID, 3600.0)


class TestNetworkService:

    async def test_interface_name_is_filled_in(self, api):
        api.get.return_value = {'type': 'bridge', 'bridge_ports': 'eno1', 'active': 1}

        iface = await NetworkService(api).interface('pve1', 'vmbr0')

        assert iface.iface == 'vmbr0'
        assert iface.active
        api.get.assert_awaited_once_with('nodes/pve1/network/vmbr0')

    async def test_create_interface(self, api):
        options = NetworkInterfaceOptions(type='vlan', vlan_id=20, vlan_raw_device='eno1', autostart=True)

        await NetworkService(api).create_interface('pve1', 'vlan20', options)

        api.post.assert_awaited_once_with('nodes/pve1/network',
                                          data={'type': 'vlan', 'vlan-id': 20, 'vlan-raw-device': 'eno1',
                                                'autostart': True, 'iface': 'vlan20'})

    async def test_create_vlan(self, api):
        await NetworkService(api).create_vlan('pve1', 'vlan30', 30, 'eno1',
                                              NetworkInterfaceOptions(cidr='10.0.30.2/24', autostart=True))

        api.post.assert_awaited_once_with('nodes/pve1/network',
                                          data={'cidr': '10.0.30.2/24', 'autostart': True, 'type': 'vlan',
                                                'vlan-id': 30, 'vlan-raw-device': 'eno1', 'iface': 'vlan30'})

    @pytest.mark.parametrize('vlan_id', [0, 4095])
    async def test_create_vlan_rejects_tag_out_of_range(self, api, vlan_id):
        with pytest.raises(ProxmoxValidationError, match='VLAN ID'):
            await NetworkService(api).create_vlan('pve1', 'vlan1', vlan_id, 'eno1')
        api.post.assert_not_awaited()

    async def test_create_bond(self, api):
        await NetworkService(api).create_bond('pve1', 'bond0', ['eno1', 'eno2'], bond_mode='802.3ad')

        api.post.assert_awaited_once_with('nodes/pve1/network',
                                          data={'type': 'bond', 'slaves': 'eno1 eno2', 'bond_mode': '802.3ad',
                                                'iface': 'bond0'})

    async def test_create_bond_needs_slaves(self, api):
        with pytest.raises(ProxmoxValidationError):
            await NetworkService(api).create_bond('pve1', 'bond0', [])
        api.post.assert_not_awaited()

    async def test_vlans_and_bonds_filter_by_type(self, api):
        network = NetworkService(api)

        await network.vlans('pve1')
        await network.bonds('pve1')

        assert [c.kwargs['params'] for c in api.get.await_args_list] == [{'type': 'vlan'}, {'type': 'bond'}]

    async def test_hosts(self, api):
        api.get.return_value = {'data': '127.0.0.1 localhost\n', 'digest': 'a1b2c3'}
        network = NetworkService(api)

        hosts = await network.hosts('pve1')
        await network.update_hosts('pve1', hosts['data'] + '10.0.0.5 pve2\n', digest=hosts['digest'])

        api.get.assert_awaited_once_with('nodes/pve1/hosts')
        api.post.assert_awaited_once_with('nodes/pve1/hosts',
                                          data={'data': '127.0.0.1 localhost\n10.0.0.5 pve2\n', 'digest': 'a1b2c3'})

    async def test_apply_and_revert(self, api, tasks):
        api.put.return_value = 'UPID:pve1:00001234:0000ABCD:65A0B1C2:srvreload:networking:root@pam:'
        network = NetworkService(api, tasks)

        upid = await network.apply('pve1')
        await network.revert('pve1')

        assert upid.startswith('UPID:pve1')
        api.put.assert_awaited_once_with('nodes/pve1/network')
        api.delete.assert_awaited_once_with('nodes/pve1/network')

    async def test_dns(self, api):
        config = DnsConfig(search='example.com', dns1='1.1.1.1')

        await NetworkService(api).update_dns('pve1', config)

        api.put.assert_awaited_once_with('nodes/pve1/dns', data=config)

    async def test_firewall_rules(self, api):
        api.get.return_value = [FirewallRule(pos=0, type='in', action='ACCEPT', dport='22')]
        network = NetworkService(api)
        rule = FirewallRuleOptions(type='in', action='ACCEPT', proto='tcp', dport='8006', enable=True)

        rules = await network.firewall_rules('pve1')
        await network.create_firewall_rule('pve1', rule)
        await network.delete_firewall_rule('pve1', 0)

        assert rules[0].dport == '22'
        api.post.assert_awaited_once_with('nodes/pve1/firewall/rules', data=rule)
        api.delete.assert_awaited_once_with('nodes/pve1/firewall/rules/0')

    async def test_firewall_rule_requires_action(self, api):
        with pytest.raises(ProxmoxValidationError):
            await NetworkService(api).create_firewall_rule('pve1', FirewallRuleOptions(type='in'))
        api.post.assert_not_awaited()


class TestBackupService:

    async def test_jobs(self, api):
        api.get.return_value = [BackupJob(id='backup-1a2b', vmid='100,101', schedule='daily')]

        jobs = await BackupService(api).jobs()

        assert jobs[0].vmids == ['100', '101']
        api.get.assert_awaited_once_with('cluster/backup', response_type=List[BackupJob])

    async def test_create_and_delete_job(self, api):
        backup = BackupService(api)
        options = BackupJobOptions(schedule='sat 02:00', storage='backups', vmid='100', mode='snapshot')

        await backup.create_job(options)
        await backup.delete_job('backup-1a2b')

        api.post.assert_awaited_once_with('cluster/backup', data=options)
        api.delete.assert_awaited_once_with('cluster/backup/backup-1a2b')

    async def test_create_job_requires_schedule(self, api):
        with pytest.raises(ProxmoxValidationError):
            await BackupService(api).create_job(BackupJobOptions(storage='backups', all=True))

    async def test_backup(self, api, tasks):
        api.post.return_value = UPID
        tasks.wait.return_value = TaskStatus(status='stopped', exitstatus='OK')

        status = await BackupService(api, tasks).backup('pve1', 100, 'backups', wait=True, timeout=600)

        assert status.successful
        api.post.assert_awaited_once_with('nodes/pve1/vzdump',
                                          data={'vmid': 100, 'storage': 'backups', 'mode': 'snapshot',
                                                'compress': 'zstd', 'notes-template': None})
        tasks.wait.assert_awaited_once_with('pve1', UPID, 600)

    async def test_backups_lists_backup_content(self, api):
        await BackupService(api).backups('pve1', 'backups', vmid=100)

        api.get.assert_awaited_once_with('nodes/pve1/storage/backups/content',
                                         params={'content': 'backup', 'vmid': 100},
                                         response_type=List[StorageContent])

    async def test_restore_vm(self, api):
        archive = 'backups:backup/vzdump-qemu-100-2024_01_12-02_00_00.vma.zst'

        await BackupService(api).restore_vm('pve1', 150, archive, storage='local-lvm', force=True)

        api.post.assert_awaited_once_with('nodes/pve1/qemu',
                                          data={'vmid': 150, 'archive': archive, 'storage': 'local-lvm',
                                                'force': True})

    async def test_restore_container(self, api):
        archive = 'backups:backup/vzdump-lxc-200-2024_01_12-02_00_00.tar.zst'

        await BackupService(api).restore_container('pve1', 250, archive)

        api.post.assert_awaited_once_with('nodes/pve1/lxc',
                                          data={'vmid': 250, 'ostemplate': archive, 'restore': True,
                                                'storage': None})

    async def test_tasks_history(self, api, tasks):
        await BackupService(api, tasks).tasks_history('pve1', vmid='100')

        tasks.list.assert_awaited_once_with('pve1', typefilter='vzdump', vmid=100, limit=None)


class TestAccessService:

    async def test_user_exists(self, api):
        api.get.return_value = {'enable': 1, 'email': 'alice@example.com'}

        assert await AccessService(api).user_exists('alice@pve')
        api.get.assert_awaited_once_with('access/users/alice@pve')

    async def test_missing_user_does_not_exist(self, api):
        api.get.side_effect = ProxmoxAPIError("HTTP 500 no such user ('bob@pve')", status_code=500)

        assert not await AccessService(api).user_exists('bob@pve')

    async def test_group_and_role_exists(self, api):
        api.get.side_effect = [{'comment': 'ops', 'members': ['alice@pve']}, ProxmoxAPIError('HTTP 500')]
        access = AccessService(api)

        assert await access.group_exists('ops')
        assert not await access.role_exists('Missing')

    async def test_group_members(self, api):
        api.get.return_value = {'comment': 'ops', 'members': ['alice@pve', 'bob@pve']}

        group = await AccessService(api).group('ops')

        assert group.user_list == ['alice@pve', 'bob@pve']

    async def test_create_user_and_update_without_password(self, api):
        access = AccessService(api)

        await access.create_user('alice@pve', UserOptions(password='s3cret-pw', email='alice@example.com'))
        await access.update_user('alice@pve', UserOptions(password='ignored', comment='on call'))

        api.post.assert_awaited_once_with('access/users', data={'password': 's3cret-pw',
                                                                'email': 'alice@example.com',
                                                                'userid': 'alice@pve'})
        api.put.assert_awaited_once_with('access/users/alice@pve', data={'comment': 'on call'})

    async def test_role(self, api):
        api.get.return_value = {'VM.Audit': 1, 'VM.PowerMgmt': 1}

        role = await AccessService(api).role('VMOperator')

        assert role.privilege_list == ['VM.Audit', 'VM.PowerMgmt']

    async def test_create_role(self, api):
        await AccessService(api).create_role('VMOperator', ['VM.Audit', 'VM.PowerMgmt'])

        api.post.assert_awaited_once_with('access/roles',
                                          data={'roleid': 'VMOperator', 'privs': 'VM.Audit,VM.PowerMgmt'})

    async def test_grant_and_revoke(self, api):
        access = AccessService(api)

        await access.grant('/vms/100', 'PVEVMUser', users=['alice@pve'])
        await access.revoke('/vms/100', ['PVEVMUser'], groups='ops')

        grant, revoke = api.put.await_args_list
        assert grant.args == ('access/acl',)
        assert grant.kwargs['data'] == {'path': '/vms/100', 'roles': 'PVEVMUser', 'users': 'alice@pve',
                                        'groups': None, 'tokens': None, 'propagate': True}
        assert revoke.kwargs['data']['delete'] is True
        assert revoke.kwargs['data']['groups'] == 'ops'

    async def test_grant_needs_a_principal(self, api):
        with pytest.raises(ProxmoxValidationError):
            await AccessService(api).grant('/vms/100', 'PVEVMUser')
        api.put.assert_not_awaited()

    async def test_acl(self, api):
        api.get.return_value = [AclEntry(path='/', type='user', ugid='alice@pve', roleid='PVEAuditor')]

        entries = await AccessService(api).acl()

        assert entries[0].propagate
        api.get.assert_awaited_once_with('access/acl', response_type=List[AclEntry])

    async def test_create_token(self, api):
        api.post.return_value = TokenSecret.model_validate({'full-tokenid': 'alice@pve!ci', 'value': 'abcd'})

        secret = await AccessService(api).create_token('alice@pve', 'ci', comment='pipeline')

        assert secret.value == 'abcd'
        api.post.assert_awaited_once_with('access/users/alice@pve/token/ci',
                                          data={'comment': 'pipeline', 'expire': None, 'privsep': True},
                                          response_type=TokenSecret)


class TestProxmoxClient:

    def test_services_share_session_and_poller(self, token_config):
        client = ProxmoxClient(token_config, poll_interval=1)

        for service in (client.nodes, client.vms, client.containers, client.storage, client.network,
                        client.backup, client.access):
            assert service.session is client.session
            assert service.tasks is client.tasks
        assert client.tasks.poll_interval == 1

    async def test_context_manager_authenticates_and_closes(self, http, token_config):
        async with ProxmoxClient(token_config, session=http) as client:
            assert client.is_authenticated

        assert not client.is_authenticated
        http.close.assert_not_awaited()

    async def test_context_manager_closes_when_login_fails(self, http, password_config):
        http.reply(401, text='authentication failure', reason='Unauthorized')
        client = ProxmoxClient(password_config, session=http)

        with patch.object(client.session, 'close', new=AsyncMock()) as mock_close:
            with pytest.raises(ProxmoxAuthError):
                async with client:
                    pass

        mock_close.assert_awaited_once()

    async def test_version(self, http, token_config):
        http.reply(200, {'data': {'version': '8.1.4', 'release': '8.1'}})
        client = ProxmoxClient(token_config, session=http)

        assert (await client.version())['version'] == '8.1.4'
        assert http.calls[0].args == ('GET', 'https://pve.example.com:8006/api2/json/version')
