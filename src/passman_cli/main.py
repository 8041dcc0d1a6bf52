#!/usr/bin/env python3
"""Passman CLI - A small local password store.
Keeps a TOML table of XOR-obscured passwords in the home directory.
"""

import argparse
import os
import sys
from pathlib import Path

from . import __version__, backup, commands, prompts
from .audit import LOG_FILE, OperationLog
from .errors import PromptError, StoreError
from .storage import CredentialStore, StoreConfig

# Constants
DEFAULT_DIR = Path.home()
DIR_ENV = 'PASSMAN_DIR'


def get_store_dir(args_dir=None):
    """Get store directory from args, environment or default."""
    if args_dir:
        return Path(args_dir)
    env_dir = os.environ.get(DIR_ENV)
    return Path(env_dir) if env_dir else DEFAULT_DIR


def get_store(args):
    """Build the credential store for the parsed arguments."""
    config = StoreConfig(directory=get_store_dir(args.dir))
    return CredentialStore(config, prompts.confirm_with(args.yes))


def get_master_password(args):
    """Master password from --master-password, environment or prompt."""
    if getattr(args, 'master_password', None) is not None:
        return args.master_password
    return prompts.get_password("Master password: ")


def log_operation(args, message):
    """Record a completed operation; a broken log never fails the command."""
    log = OperationLog(get_store_dir(args.dir) / LOG_FILE)
    try:
        log.write(message)
    except OSError as e:
        print(f"Warning: could not write to log file at {log.log_path}: {e}", file=sys.stderr)


def fail(message):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def cmd_list(args):
    """List stored password keys."""
    keys = commands.list_keys(get_store(args))

    if not keys:
        print("No passwords stored.")
    else:
        print("Stored passwords:")
        for key in keys:
            print(f"- {key}")

    log_operation(args, f"Listed {len(keys)} password keys")


def cmd_get(args):
    """Print a stored password."""
    store = get_store(args)
    key = args.key or prompts.prompt_text("Key:", "Key of the password to retrieve")
    master_password = get_master_password(args)

    password = commands.get_password(store, key, master_password)
    print(password)

    log_operation(args, f"Retrieved password for key {key}")


def cmd_set(args):
    """Store a password."""
    store = get_store(args)
    key = args.key or prompts.prompt_text("Key:", "Key to store the password under")
    value = args.value
    if value is None:
        value = prompts.get_password("Password: ")
    master_password = get_master_password(args)

    commands.set_password(store, key, value, master_password)
    print(f"Password for key {key} saved.")

    log_operation(args, f"Set password for key {key}")


def cmd_generate(args):
    """Generate, store and print a random password."""
    store = get_store(args)
    key = args.key or prompts.prompt_text("Key:", "Key to store the generated password under")
    master_password = get_master_password(args)

    password = commands.generate_password(
        store, key, args.special_chars, args.length, master_password
    )
    print(password)

    log_operation(args, f"Generated password for key {key} (length {args.length})")


def cmd_export(args):
    """Export decrypted passwords to a JSON, CSV or TOML file."""
    store = get_store(args)
    path = args.path or prompts.prompt_text("File path:", "File path to save passwords to")
    master_password = get_master_password(args)

    def choose_format():
        options = [fmt.value for fmt in backup.ExportFormat]
        return backup.ExportFormat(prompts.select("Export file type:", options))

    written = backup.export_passwords(
        store,
        Path(path),
        master_password,
        fmt=args.format,
        choose_format=choose_format,
        stamp_version=args.with_version,
    )
    print(f"Passwords successfully exported to {written}")

    log_operation(args, f"Exported passwords to {written}")


def cmd_import(args):
    """Import passwords from a JSON, CSV or TOML file."""
    store = get_store(args)
    path = args.path or prompts.prompt_text("File path:", "File path to import passwords from")
    overwrite = args.overwrite
    if overwrite is None:
        overwrite = prompts.confirm("Overwrite existing passwords?", default=False)
    master_password = get_master_password(args)

    report = backup.import_passwords(store, Path(path), master_password, overwrite)

    for key in report.imported:
        print(f"Password for key {key} imported.")
    for key in report.skipped:
        print(f"Password already exists for key {key}. Skipping...")
    for key, old, _new in report.overwritten:
        print(f"Password for key {key} overwritten (old value: {old!r}).")
    print("Import finished successfully.")

    log_operation(
        args,
        f"Imported passwords from {path} ({len(report.imported)} new, "
        f"{len(report.overwritten)} overwritten, {len(report.skipped)} skipped)"
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog='passman',
        description="Passman CLI - Local password store"
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument('--dir', help=f'Directory holding the passwords file (default: ${DIR_ENV} or ~)')
    parser.add_argument('-y', '--yes', action='store_true', help='Answer yes to every confirmation')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # list
    subparsers.add_parser('list', help='List stored password keys')

    # get
    get_parser = subparsers.add_parser('get', help='Retrieve a password')
    get_parser.add_argument('key', nargs='?', help='Password key')
    get_parser.add_argument('-m', '--master-password', help='Master password')

    # set
    set_parser = subparsers.add_parser('set', help='Store a password')
    set_parser.add_argument('key', nargs='?', help='Password key')
    set_parser.add_argument('value', nargs='?', help='Password value (prompted if omitted)')
    set_parser.add_argument('-m', '--master-password', help='Master password')

    # generate
    generate_parser = subparsers.add_parser('generate', help='Generate and store a random password')
    generate_parser.add_argument('key', nargs='?', help='Password key')
    generate_parser.add_argument(
        '-s', '--no-special', dest='special_chars', action='store_false',
        help='Only use letters and digits'
    )
    generate_parser.add_argument(
        '-l', '--length', type=int, default=commands.DEFAULT_LENGTH,
        help=f'Password length (default: {commands.DEFAULT_LENGTH})'
    )
    generate_parser.add_argument('-m', '--master-password', help='Master password')

    # export
    export_parser = subparsers.add_parser('export', help='Export passwords to a file')
    export_parser.add_argument('path', nargs='?', help='Destination file')
    export_parser.add_argument(
        '-f', '--format', type=backup.ExportFormat, choices=list(backup.ExportFormat),
        help='File type, used when the extension does not name one'
    )
    export_parser.add_argument(
        '--with-version', action='store_true',
        help='Include the version tag so the file can be imported again'
    )
    export_parser.add_argument('-m', '--master-password', help='Master password')

    # import
    import_parser = subparsers.add_parser('import', help='Import passwords from a file')
    import_parser.add_argument('path', nargs='?', help='Source file (.json, .csv or .toml)')
    import_parser.add_argument(
        '--overwrite', action=argparse.BooleanOptionalAction, default=None,
        help='Replace passwords that already exist (asked if omitted)'
    )
    import_parser.add_argument('-m', '--master-password', help='Master password')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    handlers = {
        'list': cmd_list,
        'get': cmd_get,
        'set': cmd_set,
        'generate': cmd_generate,
        'export': cmd_export,
        'import': cmd_import,
    }

    try:
        handlers[args.command](args)
    except (StoreError, PromptError, ValueError) as e:
        fail(e)


if __name__ == '__main__':
    main()
