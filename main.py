#!/usr/bin/env python3
# NixOS ZFS Installer
# Main entry point for the installer

import os
import sys
import argparse

from loguru import logger

from nixzfs import (
    BootManager,
    DiskManager,
    Installer,
    InstallConfig,
    SystemConfig,
    ZFSManager,
)
from nixzfs.config import (
    DEFAULT_BOOT_SIZE_MIB,
    DEFAULT_MACHINE_ID_FILE,
    DEFAULT_ROOT,
    DEFAULT_SETTLE_TIMEOUT,
    DEFAULT_TMPFS_SIZE,
    DEFAULT_USER,
)
from nixzfs.errors import ProvisioningError, SelectionAborted
from nixzfs.log import setup_logging

EXIT_ABORTED = 1
EXIT_FAILED = 2
EXIT_INTERRUPTED = 130


def build_parser():
    parser = argparse.ArgumentParser(description="NixOS on encrypted ZFS installer")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--disk", help="Installation disk, e.g. /dev/disk/by-id/<id>")
    parser.add_argument("--pool", help="ZFS pool name")
    parser.add_argument("--root", default=DEFAULT_ROOT, help="Transient root mount point")
    parser.add_argument(
        "--boot-size", type=int, default=DEFAULT_BOOT_SIZE_MIB,
        help="Boot partition size in MiB",
    )
    parser.add_argument("--tmpfs-size", default=DEFAULT_TMPFS_SIZE, help="Size of the tmpfs root")
    parser.add_argument(
        "--config-file", default="configuration.nix",
        help="configuration.nix to install",
    )
    parser.add_argument("--user", default=DEFAULT_USER, help="User whose password hash is stored")
    parser.add_argument(
        "--machine-id-file", default=DEFAULT_MACHINE_ID_FILE,
        help="File the ZFS host id is derived from",
    )
    parser.add_argument(
        "--settle-timeout", type=float, default=DEFAULT_SETTLE_TIMEOUT,
        help="Seconds to wait for new partitions to appear",
    )
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument(
        "--install", action="store_true",
        help="Run nixos-install once the configuration is in place",
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    print("=" * 80)
    print("NixOS on ZFS Installer")
    print("=" * 80)
    print("\nWARNING: This installer wipes the selected disk. Make sure you have")
    print("a backup of all important data before proceeding.\n")

    # Check for root privileges
    if os.geteuid() != 0:
        print("Error: This installer must be run with root privileges.")
        print("Please run this script with sudo or as the root user.")
        return EXIT_FAILED

    try:
        config = InstallConfig.from_args(args)

        disk_manager = DiskManager(settle_timeout=config.settle_timeout)
        zfs_manager = ZFSManager(root_mount=config.root)
        boot_manager = BootManager(disk_manager)
        system_config = SystemConfig(config)
        installer = Installer(config, disk_manager, zfs_manager, boot_manager, system_config)

        result = installer.run()

    except KeyboardInterrupt:
        print("\nInstallation cancelled by user.")
        return EXIT_INTERRUPTED
    except SelectionAborted as e:
        print(f"\nAborted: {e}")
        return EXIT_ABORTED
    except ProvisioningError as e:
        logger.error(f"{type(e).__name__}: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        print("\nNothing was rolled back. Before running the installer again:")
        print(f"  # umount -R {args.root}")
        print("  # zpool export <pool>  (or zpool destroy <pool>)")
        return EXIT_FAILED

    print(f"\nZFS pool '{result.pool_name}' is mounted at {config.root}.")
    if result.installed:
        print("NixOS installed. Export the pool before rebooting:")
        print(f"  # umount -R {config.root} && zpool export {result.pool_name}")
    else:
        print("To install, run 'nixos-install --no-root-passwd'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
