"""Tests for the external command runner."""

import pytest

from nixzfs.commands import format_command, run_command
from nixzfs.errors import MountFailed, ProvisioningError
from tests.conftest import completed


def test_returns_stdout(mock_subprocess_run):
    mock_subprocess_run.side_effect = lambda cmd, **kw: completed(cmd, stdout="4096\n")

    assert run_command(["blockdev", "--getpbsz", "/dev/sda"]) == "4096\n"
    mock_subprocess_run.assert_called_once_with(
        ["blockdev", "--getpbsz", "/dev/sda"],
        input=None,
        text=True,
        capture_output=True,
    )


def test_passes_input(mock_subprocess_run):
    run_command(["mkpasswd", "-m", "sha-512", "--stdin"], input_text="secret\n")

    assert mock_subprocess_run.call_args.kwargs["input"] == "secret\n"


def test_non_zero_exit_raises_given_error(mock_subprocess_run):
    mock_subprocess_run.side_effect = lambda cmd, **kw: completed(
        cmd, stderr="mount: /mnt/nix: unknown filesystem type 'zfs'.", returncode=32
    )

    with pytest.raises(MountFailed, match="unknown filesystem type"):
        run_command(["mount", "-t", "zfs", "rpool/local/nix", "/mnt/nix"], error=MountFailed)


def test_failure_without_output(mock_subprocess_run):
    mock_subprocess_run.side_effect = lambda cmd, **kw: completed(cmd, returncode=1)

    with pytest.raises(ProvisioningError, match="exit code 1"):
        run_command(["false"])


def test_missing_tool(mock_subprocess_run):
    mock_subprocess_run.side_effect = FileNotFoundError(2, "No such file", "sgdisk")

    with pytest.raises(ProvisioningError, match="Command not found: sgdisk"):
        run_command(["sgdisk", "-Zo", "/dev/sda"])


def test_uncaptured_run_inherits_terminal(mock_subprocess_run):
    assert run_command(["nixos-install"], capture=False) is None
    assert "capture_output" not in mock_subprocess_run.call_args.kwargs


def test_format_command_quotes():
    assert format_command(["echo", "a b"]) == "echo 'a b'"


def test_real_subprocess_failure_is_wrapped():
    with pytest.raises(ProvisioningError):
        run_command(["sh", "-c", "echo boom >&2; exit 3"])


def test_real_subprocess_success():
    assert run_command(["sh", "-c", "printf ok"]) == "ok"
