"""Credential Store - Load, version-check and write back the passwords file.

The passwords file is a flat TOML table of ``key = "obscured value"`` pairs
plus one reserved entry recording the version of passman that wrote it.

Every command is a full read-mutate-write cycle and no lock is taken, so two
processes writing the same file at once can lose one of the updates.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import tomli_w

from . import __version__
from .errors import IncompatibleVersion, MissingStore, ParseFailure, StoreIOError

# Constants
PASSWORDS_FILE = "passman-passwords.toml"
VERSION_KEY = "__PASSMAN_VERSION__"
MAX_RECREATE_ATTEMPTS = 1

Confirm = Callable[[str, Optional[str], bool], bool]


def set_permissions(path, mode=0o600):
    """Set file permissions."""
    os.chmod(path, mode)


def decline(prompt: str, help_message: Optional[str] = None, default: bool = False) -> bool:
    """Confirmation provider that refuses everything."""
    return False


@dataclass(frozen=True)
class StoreConfig:
    """Where the passwords file lives and which version it must carry."""

    directory: Path
    filename: str = PASSWORDS_FILE
    version_key: str = VERSION_KEY
    version: str = __version__

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.filename


class CredentialStore:
    """The only component that touches the passwords file."""

    def __init__(self, config: StoreConfig, confirm: Confirm = decline):
        """Initialize the store.

        Args:
            config: File location and version settings
            confirm: Asked before creating a missing file and before
                deleting an incompatible one

        """
        self.config = config
        self.confirm = confirm

    @property
    def path(self) -> Path:
        return self.config.path

    def load(self) -> Dict[str, Any]:
        """Read the passwords table, creating or recreating the file on consent.

        The returned table still contains the version tag; use entries()
        to get only the passwords.

        Raises:
            MissingStore: file absent and creation declined
            ParseFailure: file is not valid TOML
            IncompatibleVersion: version tag differs and recreation declined
            StoreIOError: file could not be read, created or removed

        """
        attempt = 0
        while True:
            if not self.path.exists():
                self._create()

            table = self._read()
            found = table.get(self.config.version_key)
            if found == self.config.version:
                return table

            if attempt >= MAX_RECREATE_ATTEMPTS:
                raise IncompatibleVersion(self.path, found, self.config.version)
            attempt += 1

            shown = found if isinstance(found, str) else "[unknown version]"
            recreate = self.confirm(
                f"Passwords file version ({shown}) does not match application "
                f"version ({self.config.version}). Delete it and create a new one?",
                "WARNING: all stored passwords will be lost.",
                False,
            )
            if not recreate:
                raise IncompatibleVersion(self.path, found, self.config.version)

            try:
                self.path.unlink()
            except OSError as e:
                raise StoreIOError("delete passwords file", self.path, e) from e

    def write(self, table: Dict[str, Any]) -> None:
        """Serialize the whole table and replace the file with it.

        Raises:
            StoreIOError: table could not be serialized or written

        """
        try:
            contents = tomli_w.dumps(table)
        except (TypeError, ValueError) as e:
            raise StoreIOError("serialize passwords file", self.path, e) from e

        try:
            self.path.write_text(contents, encoding='utf-8')
            set_permissions(self.path)
        except OSError as e:
            raise StoreIOError("write passwords file", self.path, e) from e

    def entries(self, table: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of the table without the version tag."""
        return {k: v for k, v in table.items() if k != self.config.version_key}

    def _create(self) -> None:
        create = self.confirm(
            "Passwords file does not exist. Create a new passwords file?",
            f"The file will be created at {self.path}",
            True,
        )
        if not create:
            raise MissingStore(self.path)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError("create directory for passwords file", self.path, e) from e
        self.write({self.config.version_key: self.config.version})

    def _read(self) -> Dict[str, Any]:
        try:
            contents = self.path.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise ParseFailure(self.path, "toml", e) from e
        except OSError as e:
            raise StoreIOError("read passwords file", self.path, e) from e

        try:
            return tomllib.loads(contents)
        except tomllib.TOMLDecodeError as e:
            raise ParseFailure(self.path, "toml", e) from e
