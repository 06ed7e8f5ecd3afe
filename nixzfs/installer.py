#!/usr/bin/env python3
# Installer Module
# Mount orchestration and the ordered provisioning pipeline

import os

from loguru import logger

from .commands import run_command
from .errors import MountFailed
from .models import MountEntry, ProvisioningResult
from .prompts import require_confirmation


def order_mount_plan(root, entries):
    """Order mounts so that every parent is mounted before its children.

    Sorting by depth is a topological order of the path tree; siblings keep
    their given order. Every entry must sit at or below `root`.
    """
    root = os.path.normpath(root)
    for entry in entries:
        target = os.path.normpath(entry.target)
        if target != root and not target.startswith(root + os.sep):
            raise MountFailed(f"{entry.target} is outside the transient root {root}")
    if not any(os.path.normpath(e.target) == root for e in entries):
        raise MountFailed(f"Mount plan has no entry for the transient root {root}")
    return sorted(entries, key=lambda e: e.depth)


class Installer:
    def __init__(self, config, disk_manager, zfs_manager, boot_manager, system_config):
        self.config = config
        self.disk_manager = disk_manager
        self.zfs_manager = zfs_manager
        self.boot_manager = boot_manager
        self.system_config = system_config
        self.root_mount = config.root
        self.result = ProvisioningResult()
        self.mounted = []
        self._hardware_config = None

    def build_mount_plan(self):
        """tmpfs root, every mountable dataset, then /boot"""
        entries = [
            MountEntry(
                source="tmpfs",
                target=self.root_mount,
                fstype="tmpfs",
                options=f"mode=755,size={self.config.tmpfs_size}",
            )
        ]
        for spec in self.config.datasets:
            if not spec.mountable:
                continue
            entries.append(
                MountEntry(
                    source=spec.full_name(self.zfs_manager.pool_name),
                    target=os.path.join(self.root_mount, spec.target),
                    fstype="zfs",
                )
            )
        entries.append(self.boot_manager.boot_mount_entry(self.root_mount))
        return order_mount_plan(self.root_mount, entries)

    def mount_filesystems(self, plan=None):
        """Mount the plan in order, creating each mountpoint first"""
        plan = plan or self.build_mount_plan()
        logger.info("Mounting tmpfs and ZFS datasets ...")
        for entry in plan:
            try:
                os.makedirs(entry.target, exist_ok=True)
            except OSError as e:
                raise MountFailed(f"Cannot create {entry.target}: {e}") from e

            cmd = ["mount", "-t", entry.fstype]
            if entry.options:
                cmd.extend(["-o", entry.options])
            cmd.extend([entry.source, entry.target])
            run_command(cmd, error=MountFailed)
            self.mounted.append(entry)
            logger.debug(f"Mounted {entry.source} on {entry.target}")
        return list(self.mounted)

    def create_persist_dirs(self):
        logger.info(f"Making {self.config.persist_root} subdirectories for persisted artifacts ...")
        created = []
        for rel in self.config.persist_dirs:
            path = os.path.join(self.config.persist_root, rel)
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise MountFailed(f"Cannot create {path}: {e}") from e
            created.append(path)
        return created

    # -- pipeline stages --

    def _select_disk(self):
        self.result.device = self.disk_manager.select_disk(self.config.disk)

    def _setup_pool(self):
        self.result.pool_name = self.zfs_manager.setup_pool(self.config.pool_name)

    def _wipe(self):
        device = self.result.device
        require_confirmation(f"This will erase ALL data on {device.name}.")
        self.disk_manager.wipe_disk(device)

    def _partition(self):
        layout = self.disk_manager.plan_partitions(self.result.device, self.config.boot_size)
        self.result.layout = self.disk_manager.create_partitions(layout)

    def _format_boot(self):
        self.boot_manager.format_boot_partition(self.result.layout.boot)

    def _create_pool(self):
        self.zfs_manager.create_pool(
            self.result.layout.data.device_path, self.result.device.ashift
        )

    def _create_datasets(self):
        datasets = self.zfs_manager.create_datasets(self.config.datasets)
        self.result.datasets = list(datasets)

    def _mount(self):
        self.result.mounts = self.mount_filesystems()

    def _persist_dirs(self):
        self.create_persist_dirs()

    def _generate_config(self):
        path = self.system_config.generate_config()
        self.system_config.patch_hardware_config(path, self.result.layout.data.device_path)
        self._hardware_config = path

    def _password(self):
        self.result.password_file = self.system_config.set_user_password()

    def _copy_configs(self):
        self.result.config_files = self.system_config.copy_configurations(self._hardware_config)

    def _install(self):
        self.system_config.install_system()
        self.result.installed = True

    def stages(self):
        stages = [
            ("Select installation disk", self._select_disk),
            ("Configure ZFS pool", self._setup_pool),
            ("Wipe installation disk", self._wipe),
            ("Partition installation disk", self._partition),
            ("Format boot partition", self._format_boot),
            ("Create ZFS pool", self._create_pool),
            ("Create ZFS datasets", self._create_datasets),
            ("Mount filesystems", self._mount),
            ("Create persistent directories", self._persist_dirs),
            ("Generate NixOS configuration", self._generate_config),
            ("Set user password", self._password),
            ("Copy configuration files", self._copy_configs),
        ]
        if self.config.install:
            stages.append(("Install NixOS", self._install))
        return stages

    def run(self):
        """Run every stage in order; the first error stops the run"""
        for name, stage in self.stages():
            logger.info(f"> {name}")
            stage()
        logger.info("Configuration complete.")
        return self.result
