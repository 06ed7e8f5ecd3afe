#!/usr/bin/env python3
# ZFS Manager Module
# Handles ZFS pool and dataset operations

import re

from InquirerPy import inquirer
from loguru import logger

from .commands import run_command
from .config import SNAPSHOT_PARENT
from .errors import (
    DatasetCreationFailed,
    PoolCreationFailed,
    SelectionAborted,
)
from .prompts import confirm_value

POOL_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.:-]*$")

# ZFS rejects shorter passphrases
MIN_PASSPHRASE_LENGTH = 8


def valid_pool_name(name):
    if not name or not POOL_NAME_PATTERN.match(name):
        return False
    # Reserved by zpool for vdev types
    return not name.startswith(("mirror", "raidz", "draid", "spare", "log"))


class ZFSManager:
    def __init__(self, root_mount="/mnt"):
        self.root_mount = root_mount
        self.pool_name = None
        self.encryption_passphrase = ""
        self.compression = "lz4"
        self.recordsize = "1M"
        self.datasets = {}

    def setup_pool(self, pool_name=None):
        """Choose the pool name and the encryption passphrase"""
        if pool_name:
            if not valid_pool_name(pool_name):
                raise PoolCreationFailed(f"Invalid pool name: {pool_name}")
        else:
            pool_name = inquirer.text(
                message="Name your ZFS pool:",
                default="rpool",
                validate=valid_pool_name,
                invalid_message="Pool names start with a letter and contain no spaces or slashes",
            ).execute()
            if not pool_name:
                raise SelectionAborted("No pool name given.")
            if not confirm_value("the pool name", pool_name):
                raise SelectionAborted(f"Pool name '{pool_name}' not confirmed.")
        self.pool_name = pool_name

        passphrase = inquirer.secret(
            message="Enter encryption passphrase:",
            validate=lambda text: len(text) >= MIN_PASSPHRASE_LENGTH,
            invalid_message=f"Use at least {MIN_PASSPHRASE_LENGTH} characters",
        ).execute()
        confirm_passphrase = inquirer.secret(
            message="Confirm encryption passphrase:",
        ).execute()
        if not passphrase or confirm_passphrase != passphrase:
            raise SelectionAborted("Passphrases do not match")
        self.encryption_passphrase = passphrase

        return self.pool_name

    def pool_options(self, ashift):
        """Pool-level properties; ashift cannot be changed later"""
        return {
            "ashift": str(ashift),
            "listsnapshots": "on",
        }

    def filesystem_options(self):
        """Root filesystem properties inherited by every dataset"""
        return {
            "acltype": "posix",
            "compression": self.compression,
            "encryption": "on",
            "keylocation": "prompt",
            "keyformat": "passphrase",
            "canmount": "off",
            "atime": "off",
            "relatime": "on",
            "recordsize": self.recordsize,
            "dnodesize": "auto",
            "xattr": "sa",
            "normalization": "formD",
        }

    def create_pool_command(self, partition_path, ashift):
        cmd = ["zpool", "create", "-f", "-m", "none", "-R", self.root_mount]
        for key, value in self.pool_options(ashift).items():
            cmd.extend(["-o", f"{key}={value}"])
        for key, value in self.filesystem_options().items():
            cmd.extend(["-O", f"{key}={value}"])
        cmd.extend([self.pool_name, partition_path])
        return cmd

    def create_pool(self, partition_path, ashift):
        """Create the encrypted pool over the data partition"""
        logger.info(f"Creating ZFS pool {self.pool_name} on {partition_path} ...")
        run_command(
            self.create_pool_command(partition_path, ashift),
            error=PoolCreationFailed,
            input_text=self.encryption_passphrase + "\n",
        )
        print(f"ZFS pool '{self.pool_name}' created successfully.")
        return self.pool_name

    def list_datasets(self):
        out = run_command(
            ["zfs", "list", "-H", "-o", "name", "-r", self.pool_name],
            error=DatasetCreationFailed,
        )
        return [line.strip() for line in out.splitlines() if line.strip()]

    def create_datasets(self, specs):
        """Create every dataset; refuse if any of them already exists"""
        names = [spec.full_name(self.pool_name) for spec in specs]
        logger.info(f"Creating ZFS datasets {', '.join(names)} ...")

        existing = set(self.list_datasets())
        collisions = [name for name in names if name in existing]
        if collisions:
            raise DatasetCreationFailed(
                f"Datasets already exist: {', '.join(collisions)}"
            )

        for spec in specs:
            self._create_dataset(spec)

        if any(spec.suffix.startswith(SNAPSHOT_PARENT + "/") for spec in specs):
            self.enable_auto_snapshot(f"{self.pool_name}/{SNAPSHOT_PARENT}")
        print("ZFS datasets created successfully.")
        return self.datasets

    def _create_dataset(self, spec):
        """Create a ZFS dataset with the given properties"""
        name = spec.full_name(self.pool_name)
        cmd = ["zfs", "create"]
        if "/" in spec.suffix:
            cmd.extend(["-p", "-v"])
        for key, value in spec.properties.items():
            cmd.extend(["-o", f"{key}={value}"])
        cmd.append(name)

        run_command(cmd, error=DatasetCreationFailed)
        self.datasets[name] = spec
        return name

    def enable_auto_snapshot(self, dataset):
        logger.info(f"Enabling auto-snapshotting for {dataset} ...")
        run_command(
            ["zfs", "set", "com.sun:auto-snapshot=true", dataset],
            error=DatasetCreationFailed,
        )
