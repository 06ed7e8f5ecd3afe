#!/usr/bin/env python3
# Prompts Module
# Confirmation gate in front of every destructive action

from InquirerPy import inquirer

from .errors import SelectionAborted

AFFIRMATIVE_ANSWERS = ("y", "yes")


def is_affirmative(answer):
    """True only for an explicit y/yes; empty or unclear answers are a no"""
    if not isinstance(answer, str):
        return False
    return answer.strip().lower() in AFFIRMATIVE_ANSWERS


def confirm_destructive(description):
    """Ask before a destructive action. Defaults to No."""
    print(f"\nWARNING: {description}")
    answer = inquirer.confirm(
        message="Do you want to continue?",
        default=False,
    ).execute()
    # None when the prompt is aborted
    return answer is True


def require_confirmation(description):
    """Raise SelectionAborted unless the operator agrees"""
    if not confirm_destructive(description):
        raise SelectionAborted(f"Declined: {description}")


def confirm_value(label, value):
    """Echo a typed value back and ask the operator to confirm it"""
    answer = inquirer.text(
        message=f"You entered '{value}' as {label}. Is this correct? (y/N):",
        default="",
    ).execute()
    return is_affirmative(answer)
