"""Scheduled backup jobs, vzdump backups and restores."""
from typing import Any, Dict, List, Optional

from ..exceptions import ProxmoxAPIError
from ..models import BackupJob, BackupJobOptions, StorageContent, TaskStatus
from ..tasks import DEFAULT_TASK_TIMEOUT
from ..validation import require, validate_node, validate_storage, validate_vmid
from .base import Service
from .storage import StorageService


class BackupService(Service):
    """
    Backup jobs live cluster wide under ``cluster/backup``; one-off backups and
    restores run as tasks on a node.
    """

    def __init__(self, session, tasks=None, logger=None):
        super().__init__(session, tasks, logger)
        self._storage = StorageService(session, self.tasks, self._logger)

    async def jobs(self) -> List[BackupJob]:
        jobs = await self.session.get('cluster/backup', response_type=List[BackupJob]) or []
        self._logger.debug(f"Retrieved {len(jobs)} backup jobs")
        return jobs

    async def job(self, job_id: str) -> BackupJob:
        job_id = require(job_id, 'job_id')
        return await self.session.get(f'cluster/backup/{job_id}', response_type=BackupJob)

    async def create_job(self, options: BackupJobOptions) -> None:
        """
        Create a scheduled backup job.

        :param options: Job settings; schedule and storage plus either vmid or all
        """
        require(options.schedule, 'schedule')
        try:
            await self.session.post('cluster/backup', data=options)
            self._logger.info(f"Backup job created with schedule '{options.schedule}'")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create backup job: {e}")
            raise

    async def update_job(self, job_id: str, options: BackupJobOptions) -> None:
        job_id = require(job_id, 'job_id')
        try:
            await self.session.put(f'cluster/backup/{job_id}', data=options)
            self._logger.info(f"Backup job {job_id} updated")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to update backup job {job_id}: {e}")
            raise

    async def delete_job(self, job_id: str) -> None:
        job_id = require(job_id, 'job_id')
        try:
            await self.session.delete(f'cluster/backup/{job_id}')
            self._logger.info(f"Backup job {job_id} deleted")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to delete backup job {job_id}: {e}")
            raise

    async def backup(self, node: str, vmid, storage: str, mode: str = 'snapshot', compress: str = 'zstd',
                     notes: Optional[str] = None, wait: bool = False, timeout: float = DEFAULT_TASK_TIMEOUT):
        """
        Back up one guest with vzdump.

        :param node: Node the guest runs on
        :param vmid: Guest ID, VM or container
        :param storage: Target storage
        :param mode: snapshot, suspend or stop
        :param compress: 0, gzip, lzo or zstd
        :param notes: Notes template stored with the backup
        :param wait: Wait for the backup task to finish
        :param timeout: Seconds to wait when wait is set
        :return: UPID, or the final TaskStatus when waiting
        """
        node = validate_node(node)
        vmid = validate_vmid(vmid)
        data = {
            'vmid': vmid,
            'storage': validate_storage(storage),
            'mode': mode,
            'compress': compress,
            'notes-template': notes,
        }
        try:
            upid = await self.session.post(f'nodes/{node}/vzdump', data=data)
            self._logger.info(f"Backup of guest {vmid} to {storage} initiated, UPID: {upid}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to back up guest {vmid}: {e}")
            raise
        return await self._task_result(node, upid, wait, timeout)

    async def backups(self, node: str, storage: str, vmid=None) -> List[StorageContent]:
        """List backup archives on a storage, optionally only those of one guest."""
        return await self._storage.content(node, storage, 'backup', vmid=vmid)

    async def delete_backup(self, node: str, storage: str, volid: str) -> None:
        await self._storage.delete_volume(node, storage, volid)

    async def restore_vm(self, node: str, vmid, archive: str, storage: Optional[str] = None,
                         force: bool = False, wait: bool = False, timeout: float = DEFAULT_TASK_TIMEOUT):
        """
        Restore a VM from a vzdump archive.

        :param archive: Backup volume ID, e.g., 'local:backup/vzdump-qemu-100-....vma.zst'
        :param force: Overwrite an existing VM with the same ID
        """
        data = {'archive': require(archive, 'archive'), 'storage': storage}
        if force:
            data['force'] = True
        return await self._restore(node, vmid, 'qemu', data, wait, timeout)

    async def restore_container(self, node: str, vmid, archive: str, storage: Optional[str] = None,
                                force: bool = False, wait: bool = False, timeout: float = DEFAULT_TASK_TIMEOUT):
        """Restore a container from a vzdump archive; arguments as for restore_vm()."""
        data = {'ostemplate': require(archive, 'archive'), 'restore': True, 'storage': storage}
        if force:
            data['force'] = True
        return await self._restore(node, vmid, 'lxc', data, wait, timeout)

    async def tasks_history(self, node: str, vmid=None, limit: Optional[int] = None) -> List[TaskStatus]:
        """Recent vzdump tasks on a node."""
        if vmid is not None:
            vmid = validate_vmid(vmid)
        return await self.tasks.list(node, typefilter='vzdump', vmid=vmid, limit=limit)

    async def wait(self, node: str, upid: str, timeout: float = DEFAULT_TASK_TIMEOUT) -> TaskStatus:
        return await self.tasks.wait(node, upid, timeout)

    async def _restore(self, node: str, vmid, guest_type: str, data: Dict[str, Any], wait: bool,
                       timeout: float):
        node = validate_node(node)
        vmid = validate_vmid(vmid)
        try:
            upid = await self.session.post(f'nodes/{node}/{guest_type}', data={'vmid': vmid, **data})
            self._logger.info(f"Restore of guest {vmid} from {data.get('archive') or data.get('ostemplate')} "
                              f"initiated, UPID: {upid}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to restore guest {vmid}: {e}")
            raise
        return await self._task_result(node, upid, wait, timeout)
