#!/usr/bin/env python3
# System Configuration Module
# Generates and patches the NixOS configuration for this machine

import os
import shutil

from InquirerPy import inquirer
from loguru import logger

from .commands import run_command
from .errors import ConfigGenerationFailed
from .prompts import confirm_destructive

TMPFS_MARKER = 'fsType = "tmpfs";'
HARDWARE_CONFIG = "hardware-configuration.nix"
SYSTEM_CONFIG = "configuration.nix"
BACKUP_SUFFIX = ".original"


def tmpfs_options_line(size):
    # mode=755 keeps openssh and friends happy about / permissions
    return f'      options = [ "defaults" "size={size}" "mode=755" ];'


def machine_lines(host_id, dev_nodes):
    return [
        f'  networking.hostId = "{host_id}";',
        f'  boot.zfs.devNodes = "{dev_nodes}";',
    ]


def insert_after_marker(text, marker, line):
    """Insert `line` after every line that contains `marker`.

    This is a positional edit and relies on nixos-generate-config putting
    fsType on a line of its own.
    """
    lines = text.splitlines()
    patched = []
    found = False
    for current in lines:
        patched.append(current)
        if marker in current:
            patched.append(line)
            found = True
    if not found:
        raise ConfigGenerationFailed(f"Marker not found: {marker}")
    return "\n".join(patched) + "\n"


def insert_before_closing(text, new_lines):
    """Insert lines just before the closing brace of a Nix module"""
    lines = text.splitlines()
    for index in range(len(lines) - 1, -1, -1):
        stripped = lines[index].strip()
        if not stripped:
            continue
        if stripped != "}":
            raise ConfigGenerationFailed("Generated module does not end with '}'")
        lines[index:index] = list(new_lines)
        return "\n".join(lines) + "\n"
    raise ConfigGenerationFailed("Generated module is empty")


class SystemConfig:
    def __init__(self, config):
        self.config = config
        self.root_mount = config.root
        self.written = []

    @property
    def etc_nixos(self):
        return os.path.join(self.root_mount, "etc/nixos")

    @property
    def persist_etc_nixos(self):
        return os.path.join(self.config.persist_root, "etc/nixos")

    def generate_config(self):
        """Run nixos-generate-config against the mounted tree"""
        logger.info("Generating NixOS configuration ...")
        run_command(
            ["nixos-generate-config", "--force", "--root", self.root_mount],
            error=ConfigGenerationFailed,
        )
        path = os.path.join(self.etc_nixos, HARDWARE_CONFIG)
        if not os.path.isfile(path):
            raise ConfigGenerationFailed(f"{path} was not generated")
        return path

    def patch_hardware_config(self, path, dev_nodes):
        """Add tmpfs options and machine-specific properties in place"""
        with open(path, "r") as f:
            original = f.read()
        shutil.copy(path, path + BACKUP_SUFFIX)

        logger.info(f"Adding tmpfs options to {HARDWARE_CONFIG} ...")
        patched = insert_after_marker(
            original, TMPFS_MARKER, tmpfs_options_line(self.config.tmpfs_size)
        )

        logger.info(f"Appending machine-specific properties to {HARDWARE_CONFIG} ...")
        patched = insert_before_closing(
            patched, machine_lines(self.config.host_id, dev_nodes)
        )

        with open(path, "w") as f:
            f.write(patched)
        return patched

    def set_user_password(self):
        """Optionally store a sha-512 password hash for the main user"""
        user = self.config.user
        target = os.path.join(self.config.persist_root, "etc/users", user)
        if not confirm_destructive(f"This will write a password hash for {user} to {target}."):
            print(f"Skipping password for {user}.")
            return None

        password = self._prompt_password(user)
        if password is None:
            print(f"Skipping password for {user}.")
            return None

        hashed = run_command(
            ["mkpasswd", "-m", "sha-512", "--stdin"],
            error=ConfigGenerationFailed,
            input_text=password + "\n",
        ).strip()

        os.makedirs(os.path.dirname(target), exist_ok=True)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(hashed + "\n")
        return target

    def _prompt_password(self, user):
        """Ask until both entries match; None if the prompt is aborted"""
        while True:
            password = inquirer.secret(
                message=f"Enter password for {user}:",
                validate=lambda text: len(text) > 0,
            ).execute()
            if not password:
                return None
            confirm_password = inquirer.secret(
                message=f"Confirm password for {user}:",
            ).execute()
            if confirm_password == password:
                return password
            print("Passwords do not match. Please try again.")

    def copy_configurations(self, hardware_config):
        """Place configuration.nix in /etc/nixos and its persisted copy"""
        source = self.config.config_file
        if not os.path.isfile(source):
            raise ConfigGenerationFailed(f"Configuration file not found: {source}")

        os.makedirs(self.persist_etc_nixos, exist_ok=True)
        copies = [
            (source, os.path.join(self.etc_nixos, SYSTEM_CONFIG)),
            (source, os.path.join(self.persist_etc_nixos, SYSTEM_CONFIG)),
            (hardware_config, os.path.join(self.persist_etc_nixos, HARDWARE_CONFIG)),
        ]
        for src, dst in copies:
            try:
                shutil.copy(src, dst)
            except OSError as e:
                raise ConfigGenerationFailed(f"Cannot copy {src} to {dst}: {e}") from e
            self.written.append(dst)
        return list(self.written)

    def install_system(self):
        """Run nixos-install; root login stays disabled"""
        logger.info("Installing NixOS ...")
        run_command(
            ["nixos-install", "-v", "--no-root-passwd", "--root", self.root_mount],
            error=ConfigGenerationFailed,
            capture=False,
        )
