#!/usr/bin/env python3
# NixOS ZFS Installer
# Package initialization file

from .disk_manager import DiskManager
from .zfs_manager import ZFSManager
from .system_config import SystemConfig
from .boot_manager import BootManager
from .installer import Installer
from .config import InstallConfig

__version__ = "0.1.0"
