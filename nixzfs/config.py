#!/usr/bin/env python3
# Configuration Module
# Run inputs for the installer, built once from the command line

import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ConfigGenerationFailed
from .models import DatasetRole, DatasetSpec

DEFAULT_ROOT = "/mnt"
DEFAULT_BOOT_SIZE_MIB = 954
DEFAULT_TMPFS_SIZE = "2G"
DEFAULT_RESERVATION = "2G"
DEFAULT_USER = "lfron"
DEFAULT_MACHINE_ID_FILE = "/etc/machine-id"
DEFAULT_SETTLE_TIMEOUT = 10.0

HOST_ID_LENGTH = 8

# Parent of home and persist, carries com.sun:auto-snapshot
SNAPSHOT_PARENT = "safe"


def default_datasets(reservation=DEFAULT_RESERVATION):
    legacy = {"secondarycache": "none", "mountpoint": "legacy"}
    return [
        DatasetSpec("local/nix", DatasetRole.SYSTEM, dict(legacy), "nix"),
        DatasetSpec("safe/home", DatasetRole.HOME, dict(legacy), "home"),
        DatasetSpec("safe/persist", DatasetRole.PERSIST, dict(legacy), "persist"),
        DatasetSpec(
            "reserved",
            DatasetRole.RESERVATION,
            {
                "refreservation": reservation,
                "primarycache": "none",
                "secondarycache": "none",
                "mountpoint": "none",
            },
        ),
    ]


# Placeholders under the persist mount for state the system links back
# into / on every boot
PERSIST_DIRS = (
    "etc/ssh",
    "etc/users",
    "etc/nixos",
    "etc/wireguard",
    "etc/NetworkManager/system-connections",
    "var/lib/bluetooth",
    "var/lib/acme",
)


def dedupe(items, key=lambda item: item):
    """Drop repeated entries, keeping the first occurrence's position"""
    seen = set()
    unique = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique


def read_host_id(machine_id_file=DEFAULT_MACHINE_ID_FILE):
    """First eight hex characters of the machine id, as ZFS wants for hostId"""
    try:
        with open(machine_id_file, "r") as f:
            machine_id = f.read().strip()
    except OSError as e:
        raise ConfigGenerationFailed(f"Cannot read {machine_id_file}: {e}") from e

    host_id = machine_id[:HOST_ID_LENGTH].lower()
    if not re.fullmatch(r"[0-9a-f]{8}", host_id):
        raise ConfigGenerationFailed(
            f"{machine_id_file} does not start with {HOST_ID_LENGTH} hex characters"
        )
    return host_id


@dataclass
class InstallConfig:
    host_id: str
    root: str = DEFAULT_ROOT
    disk: Optional[str] = None
    pool_name: Optional[str] = None
    boot_size_mib: int = DEFAULT_BOOT_SIZE_MIB
    tmpfs_size: str = DEFAULT_TMPFS_SIZE
    config_file: str = "configuration.nix"
    user: str = DEFAULT_USER
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT
    install: bool = False
    datasets: List[DatasetSpec] = field(default_factory=default_datasets)
    persist_dirs: Tuple[str, ...] = PERSIST_DIRS

    def __post_init__(self):
        self.datasets = dedupe(self.datasets, key=lambda ds: ds.suffix)
        self.persist_dirs = tuple(dedupe(self.persist_dirs))

    @property
    def boot_size(self):
        return self.boot_size_mib * 1024 * 1024

    @property
    def persist_root(self):
        return os.path.join(self.root, "persist")

    @classmethod
    def from_args(cls, args):
        """Build the run configuration from parsed command-line arguments"""
        config_file = os.path.abspath(args.config_file)
        if not os.path.isfile(config_file):
            raise ConfigGenerationFailed(f"Configuration file not found: {config_file}")

        return cls(
            host_id=read_host_id(args.machine_id_file),
            root=args.root,
            disk=args.disk,
            pool_name=args.pool,
            boot_size_mib=args.boot_size,
            tmpfs_size=args.tmpfs_size,
            config_file=config_file,
            user=args.user,
            settle_timeout=args.settle_timeout,
            install=args.install,
        )
