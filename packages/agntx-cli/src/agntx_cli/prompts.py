"""InquirerPy implementation of the install prompter."""
from __future__ import annotations

from InquirerPy import inquirer


class InquirerPrompter:
    """Terminal prompts; choices are ``(label, value)`` pairs."""

    def select_many(
        self,
        message: str,
        choices: list[tuple[str, str]],
        defaults: list[str] | None = None,
    ) -> list[str]:
        enabled = set(defaults or [])
        result = inquirer.checkbox(
            message=message,
            choices=[
                {"name": label, "value": value, "enabled": value in enabled}
                for label, value in choices
            ],
            instruction="<space> select, <ctrl-a> toggle all",
            cycle=False,
        ).execute()
        return list(result or [])

    def select_one(
        self,
        message: str,
        choices: list[tuple[str, str]],
        default: str | None = None,
    ) -> str:
        return inquirer.select(
            message=message,
            choices=[{"name": label, "value": value} for label, value in choices],
            default=default,
        ).execute()

    def confirm(self, message: str, default: bool = False) -> bool:
        return bool(inquirer.confirm(message=message, default=default).execute())

    def text(self, message: str, default: str = "") -> str:
        return inquirer.text(message=message, default=default).execute() or ""
