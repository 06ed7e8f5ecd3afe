#!/usr/bin/env python3
# Disk Manager Module
# Handles disk selection, wiping, and partitioning

import os
import stat
import time

from InquirerPy import inquirer
from InquirerPy.base.control import Choice
from loguru import logger

from .commands import run_command
from .errors import (
    DeviceNotReady,
    NoDeviceSelected,
    PartitionCreationFailed,
)
from .models import MIB, Partition, PartitionLayout, TargetDevice, partition_path

BY_ID_DIR = "/dev/disk/by-id"

BOOT_TYPE_CODE = "EF00"
BOOT_LABEL = "efiboot"
DATA_TYPE_CODE = "BF01"
DATA_LABEL = "zfspool"


class DiskManager:
    def __init__(self, by_id_dir=BY_ID_DIR, settle_timeout=10.0, poll_interval=0.25):
        self.by_id_dir = by_id_dir
        self.settle_timeout = settle_timeout
        self.poll_interval = poll_interval
        self.device = None
        self.layout = None

    def get_available_disks(self):
        """Whole disks under /dev/disk/by-id, partitions left out"""
        try:
            entries = sorted(os.listdir(self.by_id_dir))
        except FileNotFoundError:
            return []
        return [
            os.path.join(self.by_id_dir, entry)
            for entry in entries
            if "-part" not in entry
        ]

    def select_disk(self, device=None):
        """Resolve the installation disk, prompting when none was given"""
        if device:
            path = device
        else:
            disks = self.get_available_disks()
            if not disks:
                raise NoDeviceSelected("No disks found. Cannot continue.")

            choices = [Choice(value=d, name=os.path.basename(d)) for d in disks]
            path = inquirer.select(
                message="Select installation disk:",
                choices=choices,
            ).execute()
            if not path:
                raise NoDeviceSelected("No installation disk selected.")

        if not self.is_block_device(path):
            raise NoDeviceSelected(f"{path} is not a block device.")
        path = self.stable_path(path)

        self.device = TargetDevice(
            path=path,
            capacity=self.get_capacity(path),
            sector_size=self.get_sector_size(path),
        )
        print(f"Installing system on {self.device.name}.")
        return self.device

    def stable_path(self, path):
        """The by-id entry of the whole disk `path` points to.

        Kernel names like /dev/sda can change between boots, and the data
        partition path ends up in boot.zfs.devNodes.
        """
        if os.path.dirname(path) == self.by_id_dir.rstrip("/") and "-part" not in path:
            return path

        resolved = os.path.realpath(path)
        for candidate in self.get_available_disks():
            if os.path.realpath(candidate) == resolved:
                logger.debug(f"{path} resolved to {candidate}")
                return candidate
        raise NoDeviceSelected(
            f"{path} is not a whole disk listed in {self.by_id_dir}."
        )

    def is_block_device(self, path):
        try:
            return stat.S_ISBLK(os.stat(os.path.realpath(path)).st_mode)
        except OSError:
            return False

    def device_exists(self, path):
        return os.path.exists(path)

    def get_capacity(self, path):
        """Disk size in bytes"""
        out = run_command(["blockdev", "--getsize64", path], error=DeviceNotReady)
        return int(out.strip())

    def get_sector_size(self, path):
        """Physical sector size, which decides the pool's ashift"""
        out = run_command(["blockdev", "--getpbsz", path], error=DeviceNotReady)
        return int(out.strip())

    def plan_partitions(self, device, boot_size):
        """Boot partition first, the ZFS partition takes the rest"""
        if boot_size <= 0 or boot_size % MIB:
            raise PartitionCreationFailed(
                f"Boot partition size must be a positive number of MiB, got {boot_size} bytes."
            )
        if device.capacity <= boot_size:
            raise PartitionCreationFailed(
                f"{device.path} ({device.capacity} bytes) is too small for a "
                f"{boot_size // MIB} MiB boot partition."
            )

        boot = Partition(
            number=1,
            label=BOOT_LABEL,
            type_code=BOOT_TYPE_CODE,
            start=0,
            size=boot_size,
            device_path=partition_path(device.path, 1),
        )
        data = Partition(
            number=2,
            label=DATA_LABEL,
            type_code=DATA_TYPE_CODE,
            start=boot.end,
            size=device.capacity - boot.end,
            device_path=partition_path(device.path, 2),
        )
        self.layout = PartitionLayout(device=device, boot=boot, data=data)
        return self.layout

    def wipe_disk(self, device=None):
        """Remove all signatures and partition tables from the disk"""
        device = device or self.device
        logger.info(
            f"Wiping {device.path}. If errors occur, make sure all its partitions "
            "are unmounted and ZFS pools are exported or destroyed."
        )
        logger.info(
            "Run 'findmnt' to see current mounts, 'umount -R <root>' to unmount "
            "and 'zpool export <pool>' to release a pool."
        )
        # A single pass sometimes leaves ZFS labels behind
        run_command(["wipefs", "-af", device.path], error=PartitionCreationFailed)
        time.sleep(1)
        run_command(["wipefs", "-af", device.path], error=PartitionCreationFailed)
        run_command(["sgdisk", "-Zo", device.path], error=PartitionCreationFailed)

    def create_partitions(self, layout=None):
        """Write the planned GPT partitions and wait for their device nodes"""
        layout = layout or self.layout
        disk = layout.device.path

        logger.info("Creating boot (EFI) partition ...")
        boot = layout.boot
        run_command(
            [
                "sgdisk",
                "-n", f"{boot.number}:0:+{boot.size // MIB}M",
                "-t", f"{boot.number}:{boot.type_code}",
                "-c", f"{boot.number}:{boot.label}",
                disk,
            ],
            error=PartitionCreationFailed,
        )

        logger.info("Creating ZFS partition ...")
        data = layout.data
        run_command(
            [
                "sgdisk",
                "-n", f"{data.number}:0:0",
                "-t", f"{data.number}:{data.type_code}",
                "-c", f"{data.number}:{data.label}",
                disk,
            ],
            error=PartitionCreationFailed,
        )

        self.inform_kernel(disk)
        for partition in layout.partitions:
            self.wait_for_device(partition.device_path)
        return layout

    def inform_kernel(self, disk=None):
        disk = disk or self.device.path
        run_command(["partprobe", disk], error=PartitionCreationFailed)

    def wait_for_device(self, path, timeout=None):
        """Poll until `path` exists; raise DeviceNotReady after the timeout"""
        timeout = self.settle_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while not self.device_exists(path):
            if time.monotonic() >= deadline:
                raise DeviceNotReady(
                    f"{path} did not appear within {timeout:g} seconds."
                )
            time.sleep(self.poll_interval)
        logger.debug(f"{path} is ready")
        return path
