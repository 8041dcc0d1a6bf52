"""Passman CLI - A small local password store.
Keeps a TOML table of XOR-obscured passwords in the home directory.
"""

__version__ = "0.4.0"
