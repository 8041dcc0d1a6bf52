"""Repeating-key XOR used to obscure stored passwords.

This is not encryption in any strong sense: there is no integrity check, and
decrypting with the wrong master password silently yields the wrong text
(or fails when the result is not valid UTF-8).
"""

from typing import Any, Dict

from .errors import EncodeError, InvalidShape


def _xor(data: bytes, secret: bytes) -> bytes:
    return bytes(b ^ secret[i % len(secret)] for i, b in enumerate(data))


def _transform(text: str, secret: str, operation: str) -> str:
    if not secret:
        return text
    raw = _xor(text.encode('utf-8'), secret.encode('utf-8'))
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise EncodeError(operation, e) from e


def encrypt(plaintext: str, secret: str) -> str:
    """Obscure plaintext with the master password.

    Raises:
        EncodeError: if the XOR'd bytes are not valid UTF-8

    """
    return _transform(plaintext, secret, "encrypt")


def decrypt(ciphertext: str, secret: str) -> str:
    """Reveal a value produced by encrypt(). XOR is its own inverse."""
    return _transform(ciphertext, secret, "decrypt")


def bulk_decrypt(table: Dict[str, Any], secret: str, version_key: str) -> Dict[str, Any]:
    """Decrypt every value in a table, passing the version tag through.

    Builds a new table; nothing is returned if any entry fails.

    Raises:
        InvalidShape: if a value other than the version tag is not a string
        EncodeError: if a value does not decrypt to valid text

    """
    decrypted = {}
    for key, value in table.items():
        if key == version_key:
            decrypted[key] = value
            continue
        if not isinstance(value, str):
            raise InvalidShape(key)
        try:
            decrypted[key] = decrypt(value, secret)
        except EncodeError as e:
            raise EncodeError("decrypt", e.cause, key=key) from e
    return decrypted
