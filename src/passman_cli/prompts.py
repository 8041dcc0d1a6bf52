"""Interactive value providers used by the CLI to fill in missing inputs."""

import getpass
import os
import sys
from typing import Optional, Sequence

from .errors import PromptError

PASSWORD_ENV = 'PASSMAN_PASSWORD'


def get_password(prompt="Master password: "):
    """Get master password from environment variable or prompt.

    Checks PASSMAN_PASSWORD environment variable first for automation/testing.
    Falls back to interactive getpass prompt if not set.
    """
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        return env_password
    return getpass.getpass(prompt)


def _interactive():
    return sys.stdin.isatty()


def prompt_text(prompt: str, help_message: Optional[str] = None) -> str:
    """Ask for a line of text."""
    if not _interactive():
        raise PromptError(f"Could not read input for '{prompt}': stdin is not a terminal")
    if help_message:
        print(f"  ({help_message})")
    try:
        return input(f"{prompt} ")
    except EOFError as e:
        raise PromptError(f"Could not read input for '{prompt}'") from e


def confirm(prompt: str, help_message: Optional[str] = None, default: bool = False) -> bool:
    """Ask a yes/no question. Returns the default when not on a terminal."""
    if not _interactive():
        return default
    if help_message:
        print(f"  ({help_message})")
    hint = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer = input(f"{prompt} {hint} ").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in ('y', 'yes'):
            return True
        if answer in ('n', 'no'):
            return False
        print("Please answer y or n.")


def select(prompt: str, options: Sequence[str]) -> str:
    """Pick one of several options by number or name."""
    if not _interactive():
        raise PromptError(f"Could not read input for '{prompt}': stdin is not a terminal")
    for i, option in enumerate(options, start=1):
        print(f"  {i}. {option}")
    while True:
        try:
            answer = input(f"{prompt} ").strip()
        except EOFError as e:
            raise PromptError(f"Could not read input for '{prompt}'") from e
        if answer in options:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        print(f"Choose one of: {', '.join(options)}")


def confirm_with(assume_yes: bool):
    """Build the confirmation provider handed to the credential store."""
    def provider(prompt: str, help_message: Optional[str] = None, default: bool = False) -> bool:
        if assume_yes:
            return True
        return confirm(prompt, help_message, default)
    return provider
