"""Pytest fixtures and utilities for passman-cli tests."""

import tempfile
from pathlib import Path

import pytest
import tomli_w

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from passman_cli import __version__
from passman_cli.cipher import encrypt
from passman_cli.storage import VERSION_KEY, CredentialStore, StoreConfig

MASTER_PASSWORD = "hunter2"


class RecordingConfirm:
    """Confirmation provider that answers from a script and records prompts."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt, help_message=None, default=False):
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected confirmation: {prompt}")
        return self.answers.pop(0)


@pytest.fixture
def temp_store_dir():
    """Create a temporary directory for store files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_config(temp_store_dir):
    return StoreConfig(directory=temp_store_dir)


@pytest.fixture
def fresh_store(store_config):
    """Store over an empty directory that agrees to create its file."""
    return CredentialStore(store_config, lambda prompt, help_message=None, default=False: True)


@pytest.fixture
def test_store(store_config):
    """Store file with a few encrypted entries already on disk."""
    entries = {
        "github": "p@ss1",
        "email": "email_pass_789",
        "bank": "s3cret bank",
    }
    table = {VERSION_KEY: __version__}
    for key, value in entries.items():
        table[key] = encrypt(value, MASTER_PASSWORD)
    store_config.path.write_text(tomli_w.dumps(table))

    return {
        "store": CredentialStore(store_config),
        "config": store_config,
        "path": store_config.path,
        "password": MASTER_PASSWORD,
        "entries": entries,
    }


def write_store_file(config, table):
    """Write a raw table to the store location."""
    config.path.write_text(tomli_w.dumps(table))
