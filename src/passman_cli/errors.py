"""Error types raised by the password store.

Every error carries a stable ``code`` and a message that names the offending
path or key and the underlying cause.
"""

from pathlib import Path
from typing import Optional, Union


class StoreError(Exception):
    """Base class for all password store failures."""

    code = "STORE_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}\n\n{cause}"
        super().__init__(message)


class MissingStore(StoreError):
    """No passwords file and creation was declined."""

    code = "MISSING_STORE"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Passwords file does not exist at {self.path}")


class ParseFailure(StoreError):
    """File content could not be decoded in the expected format."""

    code = "PARSE_FAILURE"

    def __init__(self, path: Union[str, Path], fmt: str, cause: Optional[BaseException] = None):
        self.path = Path(path)
        self.format = fmt
        super().__init__(
            f"Could not parse passwords file at {self.path} as {fmt.upper()} format",
            cause,
        )


class IncompatibleVersion(StoreError):
    """Version tag differs from the running application version."""

    code = "INCOMPATIBLE_VERSION"

    def __init__(self, path: Union[str, Path], found: object, expected: str):
        self.path = Path(path)
        self.found = found
        self.expected = expected
        shown = found if isinstance(found, str) else "[unknown version]"
        super().__init__(
            f"Passwords file version ({shown}) at {self.path} does not match "
            f"application version ({expected})"
        )


class EncodeError(StoreError):
    """XOR transform produced bytes that are not valid UTF-8 text."""

    code = "ENCODE_ERROR"

    def __init__(self, operation: str, cause: Optional[BaseException] = None, key: Optional[str] = None):
        self.operation = operation
        self.key = key
        target = f"password for key {key}" if key is not None else "password"
        super().__init__(f"Could not {operation} {target}", cause)


class NotFound(StoreError):
    """Requested key is not in the table."""

    code = "NOT_FOUND"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No password stored for key {key}")


class InvalidShape(StoreError):
    """A stored or imported value is not a plain string."""

    code = "INVALID_SHAPE"

    def __init__(self, key: str, where: str = "passwords file"):
        self.key = key
        super().__init__(f"Invalid password value for key {key} in {where}. Expected string.")


class StoreIOError(StoreError):
    """Underlying file system failure, wrapped with the path."""

    code = "IO_ERROR"

    def __init__(self, action: str, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.path = Path(path)
        super().__init__(f"Could not {action} at {self.path}", cause)


class PromptError(Exception):
    """Interactive input was required but is not available."""
