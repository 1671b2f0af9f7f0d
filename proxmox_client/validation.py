"""Argument checks run before any request is sent."""
import re

from .exceptions import ProxmoxValidationError

NAME_REGEX = re.compile(r'^[a-zA-Z][a-zA-Z0-9_-]*$')  # snapshot names
VMID_REGEX = re.compile(r'^\d+$')
NODE_REGEX = re.compile(r'^[a-zA-Z0-9_.-]+$')
STORAGE_REGEX = re.compile(r'^[a-zA-Z0-9_.-]+$')


def require(value, name):
    """Reject None, empty and whitespace-only values; return the value stripped."""
    if value is None or not str(value).strip():
        raise ProxmoxValidationError(f"{name} must not be empty")
    return str(value).strip()


def validate_node(node):
    node = require(node, 'node')
    if not NODE_REGEX.match(node):
        raise ProxmoxValidationError(
            f"Invalid node name '{node}': must contain only letters, numbers, dots, hyphens, underscores")
    return node


def validate_vmid(vmid):
    """Validate VMID: must be digits, >0"""
    vmid = require(vmid, 'vmid')
    if not VMID_REGEX.match(vmid) or int(vmid) <= 0:
        raise ProxmoxValidationError(f"Invalid VMID '{vmid}': must be a positive integer")
    return int(vmid)


def validate_storage(storage):
    storage = require(storage, 'storage')
    if not STORAGE_REGEX.match(storage):
        raise ProxmoxValidationError(
            f"Invalid storage name '{storage}': must contain only letters, numbers, dots, hyphens, underscores")
    return storage


def validate_snapshot_name(name):
    name = require(name, 'snapshot name')
    if not NAME_REGEX.match(name):
        raise ProxmoxValidationError(
            f"Invalid snapshot name '{name}': must start with a letter and contain only letters, numbers, "
            "hyphens, underscores")
    return name
