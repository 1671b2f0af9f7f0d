"""Typed shapes of Proxmox VE requests and responses."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar('T')


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _ratio(used: Optional[float], total: Optional[float]) -> float:
    if not total:
        return 0.0
    return (used or 0) / total


def _split(value: Union[List[str], str, None]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    return list(value)


class ProxmoxModel(BaseModel):
    """Base for response models; keys the model does not declare are kept as extras."""
    model_config = ConfigDict(extra='allow', populate_by_name=True, coerce_numbers_to_str=True)


class Options(BaseModel):
    """
    Base for request parameter objects.

    Only fields that were explicitly set are sent, so ``Options(comment=None)``
    differs from ``Options()``: the first sends the field, the second omits it.
    """
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    def to_params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class ApiEnvelope(BaseModel, Generic[T]):
    """The ``{data, errors}`` wrapper around most API responses."""
    model_config = ConfigDict(extra='allow')

    data: Optional[T] = None
    errors: Optional[Dict[str, Any]] = None

    @property
    def is_success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class SessionState:
    """Credentials obtained from a successful authentication.

    A ticket session has both ``ticket`` and ``csrf_token``; an API token session
    has neither and carries ``api_token`` instead.
    """
    ticket: Optional[str] = field(default=None, repr=False)
    csrf_token: Optional[str] = field(default=None, repr=False)
    api_token: Optional[str] = field(default=None, repr=False)
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if bool(self.ticket) != bool(self.csrf_token):
            raise ValueError('ticket and CSRF token must be set together')
        if bool(self.ticket) == bool(self.api_token):
            raise ValueError('exactly one of ticket or api_token must be set')

    @property
    def uses_ticket(self) -> bool:
        return self.ticket is not None


class AuthTicket(ProxmoxModel):
    ticket: Optional[str] = None
    csrf_token: Optional[str] = Field(None, alias='CSRFPreventionToken')
    username: Optional[str] = None
    cap: Optional[Dict[str, Any]] = None


# Tasks

class TaskStatus(ProxmoxModel):
    """Snapshot of a server side task, as returned by the task status endpoint."""
    upid: str = ''
    node: str = ''
    user: str = ''
    type: str = ''
    id: Optional[str] = None
    status: str = ''
    starttime: int = 0
    endtime: Optional[int] = None
    pid: Optional[int] = None
    pstart: Optional[int] = None
    exitstatus: Optional[str] = None
    worker: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.status == 'running'

    @property
    def successful(self) -> bool:
        return self.status == 'stopped' and self.exitstatus in (None, '', 'OK')

    @property
    def started_at(self) -> Optional[datetime]:
        return _from_epoch(self.starttime)

    @property
    def ended_at(self) -> Optional[datetime]:
        return _from_epoch(self.endtime)

    @property
    def duration(self) -> Optional[timedelta]:
        if self.started_at is None or self.ended_at is None:
            return None
        return self.ended_at - self.started_at


class TaskLogLine(ProxmoxModel):
    n: int
    t: str = ''


# Nodes

class Node(ProxmoxModel):
    node: str
    status: str = 'unknown'
    cpu: Optional[float] = None
    maxcpu: Optional[int] = None
    mem: Optional[int] = None
    maxmem: Optional[int] = None
    disk: Optional[int] = None
    maxdisk: Optional[int] = None
    uptime: Optional[int] = None
    level: Optional[str] = None
    ssl_fingerprint: Optional[str] = None

    @property
    def online(self) -> bool:
        return self.status.lower() == 'online'

    @property
    def memory_usage(self) -> float:
        return _ratio(self.mem, self.maxmem)

    @property
    def disk_usage(self) -> float:
        return _ratio(self.disk, self.maxdisk)


class NodeStatus(ProxmoxModel):
    uptime: int = 0
    loadavg: List[str] = []
    cpu: Optional[float] = None
    cpuinfo: Dict[str, Any] = {}
    memory: Dict[str, Any] = {}
    swap: Dict[str, Any] = {}
    rootfs: Dict[str, Any] = {}
    pveversion: Optional[str] = None
    kversion: Optional[str] = None

    @property
    def uptime_delta(self) -> timedelta:
        return timedelta(seconds=self.uptime)

    @property
    def memory_usage(self) -> float:
        return _ratio(self.memory.get('used'), self.memory.get('total'))


# Guests (QEMU VMs and LXC containers share these shapes)

class GuestSummary(ProxmoxModel):
    vmid: int
    name: Optional[str] = None
    status: str = 'unknown'
    node: Optional[str] = None
    type: Optional[str] = None
    cpus: Optional[float] = None
    maxmem: Optional[int] = None
    maxdisk: Optional[int] = None
    uptime: Optional[int] = None
    template: bool = False
    tags: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.status == 'running'

    @property
    def tag_list(self) -> List[str]:
        return [tag for tag in (self.tags or '').replace(',', ';').split(';') if tag]


class GuestStatus(ProxmoxModel):
    vmid: Optional[int] = None
    name: Optional[str] = None
    status: str = 'unknown'
    qmpstatus: Optional[str] = None
    pid: Optional[int] = None
    cpu: Optional[float] = None
    cpus: Optional[float] = None
    mem: Optional[int] = None
    maxmem: Optional[int] = None
    uptime: Optional[int] = None
    lock: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.status.lower() == 'running'

    @property
    def stopped(self) -> bool:
        return self.status.lower() == 'stopped'

    @property
    def paused(self) -> bool:
        return (self.qmpstatus or self.status).lower() == 'paused'

    @property
    def memory_usage(self) -> float:
        return _ratio(self.mem, self.maxmem)


class Snapshot(ProxmoxModel):
    name: str
    snaptime: Optional[int] = None
    description: Optional[str] = None
    parent: Optional[str] = None
    vmstate: Optional[bool] = None

    @property
    def current(self) -> bool:
        # the running state is listed as a pseudo snapshot named "current"
        return self.name == 'current'

    @property
    def created_at(self) -> Optional[datetime]:
        return _from_epoch(self.snaptime)


class CloneOptions(Options):
    newid: int
    name: Optional[str] = None
    description: Optional[str] = None
    full: Optional[bool] = None
    target: Optional[str] = None
    storage: Optional[str] = None
    pool: Optional[str] = None
    snapname: Optional[str] = None


# Storage

class Storage(ProxmoxModel):
    storage: str
    type: Optional[str] = None
    content: Optional[str] = None
    path: Optional[str] = None
    nodes: Optional[str] = None
    shared: bool = False
    disable: bool = False

    @property
    def content_types(self) -> List[str]:
        return _split(self.content)


class StorageUsage(ProxmoxModel):
    storage: str
    type: Optional[str] = None
    content: Optional[str] = None
    active: bool = False
    enabled: bool = True
    shared: bool = False
    total: int = 0
    used: int = 0
    avail: int = 0

    @property
    def usage(self) -> float:
        return _ratio(self.used, self.total)


class StorageContent(ProxmoxModel):
    volid: str
    content: Optional[str] = None
    format: Optional[str] = None
    size: Optional[int] = None
    vmid: Optional[int] = None
    ctime: Optional[int] = None
    notes: Optional[str] = None

    @property
    def created_at(self) -> Optional[datetime]:
        return _from_epoch(self.ctime)


class StorageOptions(Options):
    storage: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    path: Optional[str] = None
    server: Optional[str] = None
    export: Optional[str] = None
    pool: Optional[str] = None
    nodes: Optional[str] = None
    shared: Optional[bool] = None
    disable: Optional[bool] = None
    prune_backups: Optional[str] = Field(None, alias='prune-backups')


# Network

class NetworkInterface(ProxmoxModel):
    iface: str
    type: Optional[str] = None
    active: bool = False
    autostart: bool = False
    method: Optional[str] = None
    address: Optional[str] = None
    netmask: Optional[str] = None
    gateway: Optional[str] = None
    cidr: Optional[str] = None
    bridge_ports: Optional[str] = None
    comments: Optional[str] = None


class NetworkInterfaceOptions(Options):
    iface: Optional[str] = None
    type: Optional[str] = None
    address: Optional[str] = None
    netmask: Optional[str] = None
    gateway: Optional[str] = None
    cidr: Optional[str] = None
    autostart: Optional[bool] = None
    bridge_ports: Optional[str] = None
    bridge_vlan_aware: Optional[bool] = None
    bond_mode: Optional[str] = None
    slaves: Optional[str] = None
    vlan_id: Optional[int] = Field(None, alias='vlan-id')
    vlan_raw_device: Optional[str] = Field(None, alias='vlan-raw-device')
    comments: Optional[str] = None


class FirewallRule(ProxmoxModel):
    pos: int
    type: str = 'in'
    action: str = ''
    enable: Optional[bool] = None
    source: Optional[str] = None
    dest: Optional[str] = None
    proto: Optional[str] = None
    dport: Optional[str] = None
    sport: Optional[str] = None
    iface: Optional[str] = None
    macro: Optional[str] = None
    comment: Optional[str] = None


class FirewallRuleOptions(Options):
    type: Optional[str] = None
    action: Optional[str] = None
    pos: Optional[int] = None
    enable: Optional[bool] = None
    source: Optional[str] = None
    dest: Optional[str] = None
    proto: Optional[str] = None
    dport: Optional[str] = None
    sport: Optional[str] = None
    iface: Optional[str] = None
    macro: Optional[str] = None
    comment: Optional[str] = None


class DnsConfig(Options):
    search: Optional[str] = None
    dns1: Optional[str] = None
    dns2: Optional[str] = None
    dns3: Optional[str] = None


# Backup

class BackupJob(ProxmoxModel):
    id: str
    schedule: Optional[str] = None
    storage: Optional[str] = None
    enabled: bool = True
    mode: Optional[str] = None
    compress: Optional[str] = None
    vmid: Optional[str] = None
    all: bool = False
    node: Optional[str] = None
    mailto: Optional[str] = None
    comment: Optional[str] = None

    @property
    def vmids(self) -> List[str]:
        return _split(self.vmid)


class BackupJobOptions(Options):
    schedule: Optional[str] = None
    storage: Optional[str] = None
    enabled: Optional[bool] = None
    mode: Optional[str] = None
    compress: Optional[str] = None
    vmid: Optional[str] = None
    all: Optional[bool] = None
    node: Optional[str] = None
    mailto: Optional[str] = None
    comment: Optional[str] = None


# Access control

class User(ProxmoxModel):
    userid: str
    enable: bool = True
    expire: Optional[int] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    comment: Optional[str] = None
    groups: Union[List[str], str, None] = None

    @property
    def group_list(self) -> List[str]:
        return _split(self.groups)

    @property
    def full_name(self) -> str:
        return ' '.join(part for part in (self.firstname, self.lastname) if part)


class UserOptions(Options):
    password: Optional[str] = None
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    comment: Optional[str] = None
    groups: Optional[str] = None
    enable: Optional[bool] = None
    expire: Optional[int] = None


class Group(ProxmoxModel):
    groupid: str
    comment: Optional[str] = None
    users: Union[List[str], str, None] = None

    @property
    def user_list(self) -> List[str]:
        return _split(self.users)


class Role(ProxmoxModel):
    roleid: str
    privs: Union[str, Dict[str, Any], None] = None
    special: bool = False

    @property
    def privilege_list(self) -> List[str]:
        # single role lookups return a {privilege: 1} map instead of a list
        if isinstance(self.privs, dict):
            return sorted(self.privs)
        return _split(self.privs)


class AclEntry(ProxmoxModel):
    path: str
    type: str
    ugid: str
    roleid: str
    propagate: bool = True


class ApiToken(ProxmoxModel):
    tokenid: str
    comment: Optional[str] = None
    expire: Optional[int] = None
    privsep: bool = True


class TokenSecret(ProxmoxModel):
    full_tokenid: str = Field(alias='full-tokenid')
    value: str = Field(repr=False)
    info: Dict[str, Any] = {}


class Realm(ProxmoxModel):
    realm: str
    type: str
    comment: Optional[str] = None
    tfa: Optional[str] = None
