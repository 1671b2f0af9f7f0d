from .access import AccessService
from .backup import BackupService
from .base import Service
from .containers import ContainerService
from .network import NetworkService
from .nodes import NodeService
from .storage import StorageService
from .vms import VmService

__all__ = [
    'AccessService',
    'BackupService',
    'ContainerService',
    'NetworkService',
    'NodeService',
    'Service',
    'StorageService',
    'VmService',
]
