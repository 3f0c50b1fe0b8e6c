"""Credential-management and customization menus.

Each menu runs until the user picks a way out and returns the next Mode
for the dispatch loop in cli.py.
"""

import enum

from . import fmt
from .config import (
    CREDENTIAL_KEY,
    MAX_PERSONALITY_LENGTH,
    ConfigStore,
    mask_credential,
    validate_setting,
)
from .errors import ConfigWriteFailure, ValidationError
from .terminal import LineReader

CHOICE_PROMPT = "Enter your choice: "

KEY_MENU_OPTIONS = [
    "View API key",
    "Update API key",
    "Remove API key",
    "Back to chat",
    "Exit",
]

CUSTOMIZE_MENU_OPTIONS = [
    "Assistant's name",
    "Assistant's personality",
    "Your name",
    "Back to chat",
    "Exit",
]


class Mode(enum.Enum):
    CHAT = "chat"
    KEY_MENU = "key_menu"
    CUSTOMIZE = "customize"
    EXIT = "exit"


def _choose(read_line: LineReader, title: str, options: list[str]) -> int | None:
    """Show a numbered menu and return the 1-based choice, or None if invalid."""
    fmt.menu(title, options)
    raw = read_line(CHOICE_PROMPT).strip()
    try:
        choice = int(raw)
    except ValueError:
        choice = 0
    if not 1 <= choice <= len(options):
        fmt.warning(f"invalid choice {raw!r}, pick 1-{len(options)}")
        return None
    return choice


def _save(store: ConfigStore, key: str, value: str, done_msg: str) -> bool:
    try:
        store.set(key, value)
    except (ValidationError, ConfigWriteFailure) as e:
        fmt.error(str(e))
        return False
    fmt.info(done_msg)
    return True


def key_menu(store: ConfigStore, read_line: LineReader) -> Mode:
    """View (masked), update or remove the stored API key."""
    while True:
        choice = _choose(read_line, "API Key", KEY_MENU_OPTIONS)
        if choice == 1:
            fmt.credential(mask_credential(store.get(CREDENTIAL_KEY)))
        elif choice == 2:
            key = read_line("Enter your new API key: ").strip()
            if not key:
                fmt.warning("API key cannot be empty; use 'Remove API key' instead")
                continue
            if not key.isascii():
                fmt.warning("API key can only contain ASCII characters")
                continue
            _save(store, CREDENTIAL_KEY, key, "API key updated.")
        elif choice == 3:
            _save(store, CREDENTIAL_KEY, "", "API key removed.")
        elif choice == 4:
            return Mode.CHAT
        elif choice == 5:
            return Mode.EXIT


def _edit_personality(store: ConfigStore, read_line: LineReader, gpt_name: str) -> None:
    while True:
        value = read_line(
            f"Enter {gpt_name}'s new personality "
            f"(max {MAX_PERSONALITY_LENGTH} characters): "
        )
        try:
            validate_setting("PERSONALITY", value)
        except ValidationError as e:
            fmt.warning(str(e))
            retry = read_line("Would you like to try again? (yes/no): ")
            if retry.strip().lower() in ("no", "n"):
                return
            continue
        _save(store, "PERSONALITY", value, "Personality updated.")
        return


def customize_menu(store: ConfigStore, read_line: LineReader) -> Mode:
    """Edit the assistant's name, its personality, or the user's name."""
    while True:
        gpt_name = store.get("GPT_NAME", "ChatGPT")
        choice = _choose(read_line, "Customize Settings", CUSTOMIZE_MENU_OPTIONS)
        if choice == 1:
            name = read_line(f"Enter {gpt_name}'s new name: ")
            _save(store, "GPT_NAME", name, "Assistant name updated.")
        elif choice == 2:
            _edit_personality(store, read_line, gpt_name)
        elif choice == 3:
            name = read_line("Enter your new name: ")
            _save(store, "USER_NAME", name, "Your name updated.")
        elif choice == 4:
            return Mode.CHAT
        elif choice == 5:
            return Mode.EXIT
