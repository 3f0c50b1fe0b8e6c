"""Durable key-value settings for cligpt.

Settings live in a flat UTF-8 file of KEY=VALUE lines (``.env`` in the
working directory by default). The file is loaded once into an ordered
mapping and every update rewrites the whole file atomically: the new
content is staged in a temporary file next to the store and swapped into
place with os.replace().
"""

import os
import tempfile
from pathlib import Path

from .errors import ConfigUnavailable, ConfigWriteFailure, ValidationError

DEFAULT_ENV_FILE = ".env"

MAX_PERSONALITY_LENGTH = 100

CREDENTIAL_KEY = "GPT_KEY"

# --- Schema ---

# Recognized keys and their defaults, in the order written on first run.
SETTING_DEFAULTS: dict[str, str] = {
    "GPT_KEY": "",
    "GPT_NAME": "ChatGPT",
    "PERSONALITY": "Friendly AI",
    "USER_NAME": "User",
}

_MASK = "*****"
_MASK_HEAD = 5
_MASK_TAIL = 3
NO_CREDENTIAL_NOTICE = "No API key found."


# --- Internal helpers ---


def _parse(text: str) -> dict[str, str]:
    """Parse KEY=VALUE lines. First occurrence of a key wins.

    Only "\\n" ends a line; values may hold any other control character.
    """
    entries: dict[str, str] = {}
    for line in text.split("\n"):
        line = line.removesuffix("\r")
        key, sep, value = line.partition("=")
        if not sep or not key:
            continue
        entries.setdefault(key, value)
    return entries


def _serialize(entries: dict[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in entries.items())


def _validate_key(key: str) -> None:
    if not key or "=" in key or "\n" in key or "\r" in key:
        raise ValidationError(f"invalid setting name {key!r}")


def validate_setting(key: str, value: str) -> None:
    """Check a (key, value) pair before it is written.

    Raises ValidationError for a malformed key, a value the flat file
    cannot hold, or a personality longer than MAX_PERSONALITY_LENGTH.
    """
    _validate_key(key)
    if "\n" in value or "\r" in value:
        raise ValidationError(f"{key} cannot contain line breaks")
    if key == "PERSONALITY" and len(value) > MAX_PERSONALITY_LENGTH:
        raise ValidationError(
            f"personality is {len(value)} characters, "
            f"max is {MAX_PERSONALITY_LENGTH}"
        )


def mask_credential(credential: str) -> str:
    """Render a secret for display: first 5 + ***** + last 3.

    Credentials too short to hide anything render as the bare mask.
    """
    if not credential:
        return NO_CREDENTIAL_NOTICE
    if len(credential) < _MASK_HEAD + _MASK_TAIL + 1:
        return _MASK
    return credential[:_MASK_HEAD] + _MASK + credential[-_MASK_TAIL:]


# --- Public API ---


class ConfigStore:
    """Named string settings backed by a flat KEY=VALUE file."""

    def __init__(self, path: str | Path = DEFAULT_ENV_FILE):
        self.path = Path(path)
        self._entries: dict[str, str] | None = None

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict[str, str]:
        """Read the store from disk and cache it.

        Raises ConfigUnavailable if the file is missing or unreadable.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigUnavailable(f"{self.path}: cannot read settings: {e}") from e
        self._entries = _parse(text)
        return dict(self._entries)

    def get(self, key: str, default: str = "") -> str:
        """Return the value stored under key, or default. Never raises."""
        if self._entries is None:
            try:
                self.load()
            except ConfigUnavailable:
                return default
        return self._entries.get(key, default)

    def settings(self) -> dict[str, str]:
        """Return every recognized setting, falling back to its default."""
        return {key: self.get(key, default) for key, default in SETTING_DEFAULTS.items()}

    def set(self, key: str, value: str) -> None:
        """Replace or append one entry, rewriting the store atomically.

        Other entries keep their values and relative order.
        """
        validate_setting(key, value)
        try:
            entries = self.load()
        except ConfigUnavailable:
            if self.path.exists():
                # Present but unreadable; leave it as it is.
                raise ConfigWriteFailure(f"{self.path}: cannot read settings to update")
            entries = {}
        entries[key] = value
        self._write(entries)

    def initialize_defaults(self) -> None:
        """Create the store anew with every recognized key at its default."""
        self._write(dict(SETTING_DEFAULTS))

    def _write(self, entries: dict[str, str]) -> None:
        content = _serialize(entries)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                newline="\n",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise ConfigWriteFailure(f"{self.path}: cannot save settings: {e}") from e
        self._entries = entries
