#!/usr/bin/env python3
# Commands Module
# Runs external tools and turns failures into installer errors

import shlex
import subprocess

from loguru import logger

from .errors import ProvisioningError


def format_command(cmd):
    return " ".join(shlex.quote(str(part)) for part in cmd)


def run_command(cmd, error=ProvisioningError, input_text=None, capture=True):
    """Run a command and raise `error` if it cannot start or exits non-zero.

    Returns the command's stdout when output is captured, otherwise None.
    With capture=False the tool inherits the terminal, which interactive
    tools (passphrase prompts, nixos-install) need.
    """
    cmd = [str(part) for part in cmd]
    logger.debug(f"Running: {format_command(cmd)}")

    try:
        if capture:
            result = subprocess.run(
                cmd,
                input=input_text,
                text=True,
                capture_output=True,
            )
        else:
            result = subprocess.run(cmd, input=input_text, text=True)
    except FileNotFoundError as e:
        raise error(f"Command not found: {cmd[0]}") from e

    if result.returncode != 0:
        message = ""
        if capture:
            message = (result.stderr or "").strip() or (result.stdout or "").strip()
        detail = f": {message}" if message else ""
        raise error(
            f"Command failed with exit code {result.returncode} "
            f"({format_command(cmd)}){detail}"
        )

    if capture:
        return result.stdout
    return None
