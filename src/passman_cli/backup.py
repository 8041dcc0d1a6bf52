"""Backup - Export passwords to JSON/CSV/TOML and merge them back in.

Exports are written in plaintext. Imports must carry a version tag equal to
the running version; the whole file is rejected otherwise.
"""

import csv
import io
import json
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import tomli_w

from .cipher import bulk_decrypt, decrypt, encrypt
from .errors import EncodeError, IncompatibleVersion, InvalidShape, ParseFailure, StoreIOError
from .storage import CredentialStore


class ExportFormat(str, Enum):
    """Supported interchange formats, named by file extension."""

    JSON = "json"
    CSV = "csv"
    TOML = "toml"

    def __str__(self) -> str:
        return self.value


@dataclass
class ImportReport:
    """Outcome of merging an imported file into the store."""

    imported: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    # (key, previous plaintext, new plaintext)
    overwritten: List[Tuple[str, str, str]] = field(default_factory=list)


def format_from_path(path: Path) -> Optional[ExportFormat]:
    """Infer a format from the file extension, if it names one."""
    suffix = Path(path).suffix.lstrip('.').lower()
    try:
        return ExportFormat(suffix)
    except ValueError:
        return None


def resolve_format(path: Path, requested: Optional[ExportFormat] = None) -> Optional[ExportFormat]:
    """Pick the export format: the extension wins, then the explicit request."""
    inferred = format_from_path(path)
    if inferred is not None:
        return inferred
    return ExportFormat(requested) if requested is not None else None


def dumps(table: Dict[str, Any], fmt: ExportFormat) -> str:
    """Serialize a plaintext table."""
    if fmt == ExportFormat.JSON:
        return json.dumps(table, indent=2)
    if fmt == ExportFormat.TOML:
        return tomli_w.dumps(table)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    # csv only quotes \r when it is part of the line terminator
    quoted = csv.writer(buffer, lineterminator='\n', quoting=csv.QUOTE_ALL)
    for key, value in table.items():
        row = [key, value]
        if any('\r' in str(f) for f in row):
            quoted.writerow(row)
        else:
            writer.writerow(row)
    return buffer.getvalue()


def loads(text: str, fmt: ExportFormat, path: Path) -> Dict[str, Any]:
    """Decode an interchange file into a table.

    Raises:
        ParseFailure: content is not a valid table in the given format

    """
    if fmt == ExportFormat.JSON:
        try:
            table = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseFailure(path, fmt.value, e) from e
        if not isinstance(table, dict):
            raise ParseFailure(path, fmt.value, ValueError("top-level value is not an object"))
        return table

    if fmt == ExportFormat.TOML:
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ParseFailure(path, fmt.value, e) from e

    table = {}
    try:
        for line_no, row in enumerate(csv.reader(io.StringIO(text, newline='')), start=1):
            if not row:
                continue
            if len(row) != 2:
                raise ParseFailure(
                    path, fmt.value,
                    ValueError(f"line {line_no}: expected 2 fields, found {len(row)}")
                )
            table[row[0]] = row[1]
    except csv.Error as e:
        raise ParseFailure(path, fmt.value, e) from e
    return table


def export_passwords(
    store: CredentialStore,
    export_path: Path,
    master_password: str,
    fmt: Optional[ExportFormat] = None,
    choose_format: Optional[Callable[[], ExportFormat]] = None,
    stamp_version: bool = False,
) -> Path:
    """Decrypt every stored password and write them to a file.

    Args:
        store: The password store to export
        export_path: Destination file
        master_password: Secret used to reveal the stored values
        fmt: Format to use when the extension does not name one
        choose_format: Asked when neither the extension nor fmt decide;
            the chosen format is appended to the file name
        stamp_version: Include the version tag so the file can be imported

    Returns:
        The path actually written

    """
    export_path = Path(export_path)
    resolved = resolve_format(export_path, fmt)
    if resolved is None:
        if choose_format is None:
            raise ParseFailure(
                export_path, "unknown",
                ValueError("no export format given and none implied by the file extension")
            )
        resolved = ExportFormat(choose_format())
        export_path = export_path.with_name(f"{export_path.name}.{resolved.value}")

    table = store.load()
    passwords = store.entries(table)
    decrypted = bulk_decrypt(passwords, master_password, store.config.version_key)
    if stamp_version:
        decrypted[store.config.version_key] = store.config.version

    try:
        contents = dumps(decrypted, resolved)
    except (TypeError, ValueError) as e:
        raise StoreIOError(f"serialize passwords to {resolved.value.upper()} format", export_path, e) from e

    try:
        export_path.write_text(contents, encoding='utf-8', newline='')
    except OSError as e:
        raise StoreIOError("write passwords", export_path, e) from e

    return export_path


def read_import_file(import_path: Path, version_key: str, version: str) -> Dict[str, Any]:
    """Read and decode an import file and check its version tag.

    Raises:
        StoreIOError: file could not be read
        ParseFailure: unsupported extension or undecodable content
        IncompatibleVersion: version tag missing or different

    """
    import_path = Path(import_path)
    fmt = format_from_path(import_path)
    if fmt is None:
        suffix = import_path.suffix.lstrip('.') or "[none]"
        raise ParseFailure(import_path, suffix, ValueError(f"Unsupported import file type: {suffix}"))

    try:
        # No newline translation: CSV values may hold \r
        text = import_path.read_bytes().decode('utf-8')
    except UnicodeDecodeError as e:
        raise ParseFailure(import_path, fmt.value, e) from e
    except OSError as e:
        raise StoreIOError("read passwords file", import_path, e) from e

    imported = loads(text, fmt, import_path)

    found = imported.get(version_key)
    if found != version:
        raise IncompatibleVersion(import_path, found, version)
    return imported


def import_passwords(
    store: CredentialStore,
    import_path: Path,
    master_password: str,
    overwrite: bool,
) -> ImportReport:
    """Merge passwords from a file into the store.

    Existing keys are kept unless overwrite is set. The store is written
    once, after every key has been processed; any failure before that
    leaves the file unchanged.
    """
    version_key = store.config.version_key
    imported = read_import_file(import_path, version_key, store.config.version)

    current = store.load()
    report = ImportReport()

    for key, value in imported.items():
        if key == version_key:
            continue
        if not isinstance(value, str):
            raise InvalidShape(key, f"imported file {import_path}")

        try:
            encrypted = encrypt(value, master_password)
        except EncodeError as e:
            raise EncodeError("encrypt", e.cause, key=key) from e

        if key not in current:
            current[key] = encrypted
            report.imported.append(key)
        elif not overwrite:
            report.skipped.append(key)
        else:
            previous = current[key]
            if not isinstance(previous, str):
                raise InvalidShape(key, str(store.path))
            current[key] = encrypted
            report.overwritten.append((key, decrypt(previous, master_password), value))

    store.write(current)
    return report
