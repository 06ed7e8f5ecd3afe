#!/usr/bin/env python3
# Boot Manager Module
# Handles the EFI boot partition: formatting and its /boot mount

from loguru import logger

from .commands import run_command
from .errors import PartitionCreationFailed
from .models import MountEntry

BOOT_FS_LABEL = "BOOT"


class BootManager:
    def __init__(self, disk_manager):
        self.disk_manager = disk_manager
        self.boot_partition = None

    def format_boot_partition(self, partition):
        """Format the EFI partition as FAT32"""
        logger.info(f"Formatting BOOT partition {partition.device_path} as FAT32 ...")
        run_command(
            ["mkfs.vfat", "-F", "32", "-n", BOOT_FS_LABEL, partition.device_path],
            error=PartitionCreationFailed,
        )
        self.boot_partition = partition

        # Let udev pick up the new filesystem before anything references it
        self.disk_manager.inform_kernel()
        self.disk_manager.wait_for_device(partition.device_path)
        return partition

    def boot_mount_entry(self, root_mount, partition=None):
        partition = partition or self.boot_partition
        return MountEntry(
            source=partition.device_path,
            target=f"{root_mount.rstrip('/')}/boot",
            fstype="vfat",
        )
