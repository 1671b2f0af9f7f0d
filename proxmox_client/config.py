"""Connection settings and the YAML loader for them."""
import logging
import os
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ProxmoxConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8006
DEFAULT_REALM = 'pam'
DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = 'proxmox-ve-client/0.1.0'
CONFIG_ENV_VAR = 'PROXMOX_CLIENT_CONFIG'
DEFAULT_CONFIG_PATH = os.path.join('secrets', 'config.proxmox.yaml')


class ConnectionConfig(BaseModel):
    """Everything needed to reach and log into one Proxmox VE server.

    Either ``password`` or ``api_token`` (``user@realm!tokenid=secret``) must be
    set before authenticating. Instances are immutable.
    """
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    username: str
    password: Optional[str] = Field(None, repr=False)
    api_token: Optional[str] = Field(None, repr=False)
    realm: str = DEFAULT_REALM
    use_https: bool = True
    ignore_tls_errors: bool = False
    timeout_seconds: float = Field(DEFAULT_TIMEOUT, gt=0)
    reauthenticate_on_401: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator('host', 'username', 'realm')
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('must not be empty')
        return value.strip()

    @property
    def base_url(self) -> str:
        scheme = 'https' if self.use_https else 'http'
        return f"{scheme}://{self.host}:{self.port}/api2/json"

    @property
    def login_name(self) -> str:
        """Username qualified with the realm, as the ticket endpoint expects it."""
        if '@' in self.username:
            return self.username
        return f"{self.username}@{self.realm}"


def load_config(config_path: Optional[str] = None, secret_path: Optional[str] = None) -> ConnectionConfig:
    """
    Load a ConnectionConfig from a YAML file.

    The file holds a ``proxmox:`` mapping of ConnectionConfig fields. The secret can be
    kept out of it in a separate file, named by ``secret_path`` or the ``secret_file``
    key; ``secret_field`` says whether that file holds the ``api_token`` (default) or
    the ``password``.

    :param config_path: YAML file, defaults to $PROXMOX_CLIENT_CONFIG or secrets/config.proxmox.yaml
    :param secret_path: Optional file holding the secret
    :return: Validated ConnectionConfig
    """
    config_path = config_path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH

    try:
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ProxmoxConfigError(f"Cannot read config {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ProxmoxConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw_config, dict) or not isinstance(raw_config.get('proxmox'), dict):
        raise ProxmoxConfigError(f"{config_path} has no 'proxmox' section")

    section = dict(raw_config['proxmox'])
    secret_file = secret_path or section.pop('secret_file', None)
    section.pop('secret_file', None)
    secret_field = section.pop('secret_field', 'api_token')
    if secret_field not in ('api_token', 'password'):
        raise ProxmoxConfigError(f"secret_field must be 'api_token' or 'password', not {secret_field!r}")

    if secret_file:
        try:
            with open(secret_file, 'r') as f:
                section[secret_field] = f.read().strip()
        except OSError as e:
            raise ProxmoxConfigError(f"Cannot read secret file {secret_file}: {e}") from e

    try:
        config = ConnectionConfig(**section)
    except ValidationError as e:
        raise ProxmoxConfigError(f"Invalid config: {e}") from e

    logger.debug(f"Loaded connection config for {config.host}:{config.port} from {config_path}")
    return config
