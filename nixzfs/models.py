#!/usr/bin/env python3
# Models Module
# Devices, partitions, datasets and mount entries of one provisioning run

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

MIB = 1024 * 1024

# ZFS cannot change ashift after pool creation; below 12 hurts drives that
# report 512 byte sectors but write 4K internally.
MIN_ASHIFT = 12


def partition_path(disk, number):
    """Device node of partition `number` on `disk`"""
    if "/dev/disk/by-" in disk:
        return f"{disk}-part{number}"
    if disk[-1].isdigit():
        # nvme0n1 -> nvme0n1p1, mmcblk0 -> mmcblk0p1
        return f"{disk}p{number}"
    return f"{disk}{number}"


@dataclass(frozen=True)
class TargetDevice:
    path: str
    capacity: int
    sector_size: int = 4096

    @property
    def ashift(self):
        shift = max(self.sector_size, 1).bit_length() - 1
        return max(shift, MIN_ASHIFT)

    @property
    def name(self):
        return os.path.basename(self.path)


@dataclass(frozen=True)
class Partition:
    number: int
    label: str
    type_code: str
    start: int
    size: int
    device_path: str

    @property
    def end(self):
        return self.start + self.size


@dataclass(frozen=True)
class PartitionLayout:
    device: TargetDevice
    boot: Partition
    data: Partition

    @property
    def partitions(self):
        return [self.boot, self.data]


class DatasetRole(Enum):
    SYSTEM = "system"
    HOME = "home"
    PERSIST = "persist"
    RESERVATION = "reservation"


@dataclass(frozen=True)
class DatasetSpec:
    """A dataset to create under the pool.

    `target` is the mount sub-path below the transient root, None for
    datasets that are never mounted.
    """
    suffix: str
    role: DatasetRole
    properties: Dict[str, str] = field(default_factory=dict)
    target: Optional[str] = None

    @property
    def mountable(self):
        return self.role is not DatasetRole.RESERVATION and self.target is not None

    def full_name(self, pool_name):
        return f"{pool_name}/{self.suffix}"


@dataclass(frozen=True)
class MountEntry:
    source: str
    target: str
    fstype: str
    options: Optional[str] = None

    @property
    def depth(self):
        return len([p for p in self.target.split("/") if p])


@dataclass
class ProvisioningResult:
    device: Optional[TargetDevice] = None
    layout: Optional[PartitionLayout] = None
    pool_name: Optional[str] = None
    datasets: List[str] = field(default_factory=list)
    mounts: List[MountEntry] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)
    password_file: Optional[str] = None
    installed: bool = False
