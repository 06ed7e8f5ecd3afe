"""
Pytest configuration and shared fixtures for the installer tests.

No test touches a real disk: every external command goes through a
mocked subprocess.run.
"""

import subprocess

import pytest

from nixzfs.config import InstallConfig
from nixzfs.models import TargetDevice

TEST_DISK = "/dev/disk/by-id/test-disk"
DISK_CAPACITY = 500107862016

HARDWARE_CONFIG_TEXT = """\
# Do not modify this file!  It was generated by 'nixos-generate-config'
{ config, lib, pkgs, modulesPath, ... }:

{
  imports = [ ];

  fileSystems."/" =
    { device = "tmpfs";
      fsType = "tmpfs";
    };

  fileSystems."/nix" =
    { device = "rpool/local/nix";
      fsType = "zfs";
    };

  swapDevices = [ ];
}
"""


def completed(cmd, stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def mock_subprocess_run(mocker):
    """Mock for subprocess.run returning success with empty output"""
    run = mocker.patch("subprocess.run")
    run.side_effect = lambda cmd, **kwargs: completed(cmd)
    return run


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "configuration.nix"
    path.write_text("{ config, pkgs, ... }: {\n  imports = [ ./hardware-configuration.nix ];\n}\n")
    return path


@pytest.fixture
def install_config(tmp_path, config_file):
    return InstallConfig(
        host_id="deadbeef",
        root=str(tmp_path / "mnt"),
        disk=TEST_DISK,
        pool_name="rpool",
        config_file=str(config_file),
        settle_timeout=0.5,
    )


@pytest.fixture
def target_device():
    return TargetDevice(path=TEST_DISK, capacity=DISK_CAPACITY, sector_size=4096)


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("time.sleep")
