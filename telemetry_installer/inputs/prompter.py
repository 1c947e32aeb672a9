# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/inputs/prompter.py
# Author: Elven Observability
# Details of functionality of this file: Interactive terminal prompts with defaults and hidden secret entry

"""
Terminal prompter used by the Input Resolver when environment variables do
not supply the required fields.
"""

import getpass
import sys
from typing import Optional


class ConsolePrompter:
    """Reads answers from the controlling terminal."""

    def is_interactive(self) -> bool:
        return sys.stdin is not None and sys.stdin.isatty()

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        """Ask a question; an empty answer returns `default` (or '')."""
        suffix = f" [default: {default}]" if default else ""
        answer = input(f"{prompt}{suffix}: ").strip()
        if not answer and default is not None:
            return default
        return answer

    def ask_secret(self, prompt: str) -> str:
        return getpass.getpass(f"{prompt}: ").strip()

    def say(self, message: str) -> None:
        print(message)

    def error(self, message: str) -> None:
        print(f"✗ {message}")

    def warn(self, message: str) -> None:
        print(f"⚠ {message}")
