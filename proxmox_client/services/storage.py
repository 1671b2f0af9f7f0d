"""Storage definitions, usage and content."""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..exceptions import ProxmoxAPIError
from ..models import Storage, StorageContent, StorageOptions, StorageUsage
from ..validation import require, validate_node, validate_storage, validate_vmid
from .base import Service


class StorageService(Service):
    """
    Cluster wide storage definitions (``storage``) and their per node view
    (``nodes/{node}/storage``): usage, content listings and volume management.
    """

    async def list(self, storage_type: Optional[str] = None) -> List[Storage]:
        params = {'type': storage_type} if storage_type else None
        pools = await self.session.get('storage', params=params, response_type=List[Storage]) or []
        self._logger.debug(f"Retrieved {len(pools)} storage definitions")
        return pools

    async def get(self, storage: str) -> Storage:
        storage = validate_storage(storage)
        return await self.session.get(f'storage/{storage}', response_type=Storage)

    async def create(self, storage: str, options: StorageOptions) -> None:
        """
        Create a storage definition.

        :param storage: Storage ID
        :param options: Storage settings; ``type`` is required by the server
        """
        storage = validate_storage(storage)
        data = {**options.to_params(), 'storage': storage}
        try:
            await self.session.post('storage', data=data)
            self._logger.info(f"Storage {storage} created successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to create storage {storage}: {e}")
            raise

    async def update(self, storage: str, options: StorageOptions) -> None:
        storage = validate_storage(storage)
        data = options.to_params()
        # id and type are fixed once the storage exists
        data.pop('storage', None)
        data.pop('type', None)
        try:
            await self.session.put(f'storage/{storage}', data=data)
            self._logger.info(f"Storage {storage} updated")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to update storage {storage}: {e}")
            raise

    async def delete(self, storage: str) -> None:
        """Remove a storage definition; the data on it is left untouched."""
        storage = validate_storage(storage)
        try:
            await self.session.delete(f'storage/{storage}')
            self._logger.info(f"Storage {storage} deleted successfully")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to delete storage {storage}: {e}")
            raise

    async def usage(self, node: str, storage: Optional[str] = None) -> List[StorageUsage]:
        """
        Get capacity figures for the storages visible on a node.

        :param node: Node name
        :param storage: Limit the result to one storage
        :return: List of StorageUsage
        """
        node = validate_node(node)
        if storage:
            storage = validate_storage(storage)
            status = await self.session.get(f'nodes/{node}/storage/{storage}/status')
            return [StorageUsage.model_validate({'storage': storage, **(status or {})})]
        return await self.session.get(f'nodes/{node}/storage', response_type=List[StorageUsage]) or []

    async def content(self, node: str, storage: str, content_type: Optional[str] = None,
                      vmid=None) -> List[StorageContent]:
        """
        List volumes on a storage.

        :param node: Node name
        :param storage: Storage ID
        :param content_type: Optional content type filter (e.g., 'iso', 'vztmpl', 'backup')
        :param vmid: Only volumes owned by this guest
        :return: List of StorageContent
        """
        node = validate_node(node)
        storage = validate_storage(storage)
        params = {'content': content_type}
        if vmid is not None:
            params['vmid'] = validate_vmid(vmid)
        items = await self.session.get(f'nodes/{node}/storage/{storage}/content', params=params,
                                       response_type=List[StorageContent]) or []
        self._logger.debug(f"Retrieved {len(items)} content items from storage {storage}")
        return items

    async def iso_images(self, node: str, storage: str) -> List[StorageContent]:
        return await self.content(node, storage, 'iso')

    async def templates(self, node: str, storage: str) -> List[StorageContent]:
        return await self.content(node, storage, 'vztmpl')

    async def volume(self, node: str, storage: str, volid: str) -> Dict[str, Any]:
        return await self.session.get(self._volume_path(node, storage, volid)) or {}

    async def create_volume(self, node: str, storage: str, vmid, filename: str, size: str,
                            volume_format: Optional[str] = None) -> str:
        """
        Allocate a new disk image owned by a guest.

        :param vmid: Owning guest
        :param filename: Volume name, e.g. 'vm-100-disk-1' or 'vm-100-disk-1.qcow2'
        :param size: Size with unit suffix, e.g. '32G'
        :param volume_format: raw, qcow2 or subvol; storage default when None
        :return: The new volume ID
        """
        node = validate_node(node)
        storage = validate_storage(storage)
        data = {'vmid': validate_vmid(vmid), 'filename': require(filename, 'filename'),
                'size': require(size, 'size'), 'format': volume_format}
        try:
            volid = await self.session.post(f'nodes/{node}/storage/{storage}/content', data=data)
            self._logger.info(f"Volume {volid} allocated on storage {storage}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to allocate volume {filename} on storage {storage}: {e}")
            raise
        return volid

    async def copy_volume(self, node: str, storage: str, volid: str, target: str,
                          target_node: Optional[str] = None, wait: bool = False):
        """
        Copy a volume to a new volume ID.

        :param target: Target volume ID, e.g. 'local-lvm:vm-101-disk-0'
        :param target_node: Node to copy to, the source node when None
        :return: UPID (or final TaskStatus when waiting)
        """
        path = self._volume_path(node, storage, volid)
        target = require(target, 'target')
        if target_node:
            target_node = validate_node(target_node)
        upid = await self.session.post(path, data={'target': target, 'target_node': target_node})
        self._logger.info(f"Copy of volume {volid} to {target} initiated, UPID: {upid}")
        return await self._task_result(node, upid, wait)

    async def delete_volume(self, node: str, storage: str, volid: str, wait: bool = False):
        """
        Delete a volume, e.g., 'local:iso/debian-12.iso'.

        :return: UPID (or final TaskStatus when waiting), None if removed synchronously
        """
        path = self._volume_path(node, storage, volid)
        try:
            upid = await self.session.delete(path)
            self._logger.info(f"Volume {volid} deleted from storage {storage}")
        except ProxmoxAPIError as e:
            self._logger.error(f"Failed to delete volume {volid}: {e}")
            raise
        return await self._task_result(node, upid, wait)

    @staticmethod
    def _volume_path(node: str, storage: str, volid: str) -> str:
        node = validate_node(node)
        storage = validate_storage(storage)
        volid = require(volid, 'volid')
        return f"nodes/{node}/storage/{storage}/content/{quote(volid, safe='')}"
