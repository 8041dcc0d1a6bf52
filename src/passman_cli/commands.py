"""Store operations behind the CLI commands.

Each mutating operation loads the full table, changes it in memory and
writes the full table back.
"""

import string

import nacl.utils

from .cipher import decrypt, encrypt
from .errors import InvalidShape, NotFound, StoreError
from .storage import CredentialStore

ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits
SPECIAL_CHARS = " !#$%&()*+,-./:;<=>?@[]^_"
DEFAULT_LENGTH = 32


def list_keys(store: CredentialStore) -> list:
    """Return the stored keys, sorted, without the version tag."""
    return sorted(store.entries(store.load()))


def get_password(store: CredentialStore, key: str, master_password: str) -> str:
    """Decrypt and return the password stored under key."""
    passwords = store.entries(store.load())
    if key not in passwords:
        raise NotFound(key)
    value = passwords[key]
    if not isinstance(value, str):
        raise InvalidShape(key, str(store.path))
    return decrypt(value, master_password)


def set_password(store: CredentialStore, key: str, value: str, master_password: str) -> None:
    """Store a password under key, replacing any previous one."""
    if key == store.config.version_key:
        raise StoreError(f"Key {key} is reserved and cannot hold a password")
    table = store.load()
    table[key] = encrypt(value, master_password)
    store.write(table)


def random_password(length: int, special_chars: bool = True) -> str:
    """Draw length characters uniformly from the password alphabet."""
    alphabet = ALPHANUMERIC + SPECIAL_CHARS if special_chars else ALPHANUMERIC
    # Reject bytes past the last full multiple of the alphabet size.
    limit = 256 - 256 % len(alphabet)
    chars = []
    while len(chars) < length:
        for b in nacl.utils.random(length - len(chars)):
            if b < limit:
                chars.append(alphabet[b % len(alphabet)])
    return ''.join(chars[:length])


def generate_password(
    store: CredentialStore,
    key: str,
    special_chars: bool,
    length: int,
    master_password: str,
) -> str:
    """Generate a random password, store it under key and return it."""
    if length < 0:
        raise ValueError(f"Password length must not be negative: {length}")
    password = random_password(length, special_chars)
    set_password(store, key, password, master_password)
    return password
