"""Tests for CLI commands and argument parsing."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from passman_cli import __version__
from passman_cli.audit import LOG_FILE
from passman_cli.cipher import decrypt
from passman_cli.main import DEFAULT_DIR, build_parser, get_master_password, get_store_dir, main
from passman_cli.prompts import confirm, confirm_with, get_password, select
from passman_cli.storage import PASSWORDS_FILE, VERSION_KEY

from conftest import MASTER_PASSWORD, write_store_file


def run(temp_store_dir, *argv):
    """Run the CLI against a temp directory, answering yes to confirmations."""
    main(["--dir", str(temp_store_dir), "--yes", *argv])


class TestGetPassword:
    """Tests for the master password provider."""

    def test_get_password_from_env(self):
        """Test that PASSMAN_PASSWORD env var is used when set."""
        with patch.dict(os.environ, {"PASSMAN_PASSWORD": "testpass123"}):
            assert get_password() == "testpass123"

    @patch("passman_cli.prompts.getpass.getpass")
    def test_get_password_fallback_to_getpass(self, mock_getpass):
        """Test fallback to getpass when env var not set."""
        mock_getpass.return_value = "manualpass"
        with patch.dict(os.environ, {}, clear=True):
            assert get_password("Enter password: ") == "manualpass"
            mock_getpass.assert_called_once_with("Enter password: ")

    def test_flag_beats_env(self):
        args = build_parser().parse_args(["get", "k", "-m", "flag"])
        with patch.dict(os.environ, {"PASSMAN_PASSWORD": "env"}):
            assert get_master_password(args) == "flag"

    def test_empty_flag_is_kept(self):
        """Test an explicit empty master password disables obscuring."""
        args = build_parser().parse_args(["get", "k", "-m", ""])
        assert get_master_password(args) == ""


class TestGetStoreDir:
    """Tests for get_store_dir."""

    def test_from_arg(self):
        assert get_store_dir("/custom/dir") == Path("/custom/dir")

    def test_from_env(self):
        with patch.dict(os.environ, {"PASSMAN_DIR": "/env/dir"}):
            assert get_store_dir(None) == Path("/env/dir")

    def test_default_home(self, monkeypatch):
        monkeypatch.delenv("PASSMAN_DIR", raising=False)
        assert get_store_dir() == DEFAULT_DIR == Path.home()


class TestPrompts:
    """Tests for the interactive providers."""

    @patch("passman_cli.prompts._interactive", return_value=False)
    def test_confirm_non_interactive_uses_default(self, _):
        assert confirm("Create?", default=True) is True
        assert confirm("Delete?", default=False) is False

    @patch("passman_cli.prompts._interactive", return_value=True)
    @patch("builtins.input", side_effect=["maybe", "y"])
    def test_confirm_retries_until_answer(self, mock_input, _):
        assert confirm("Create?") is True
        assert mock_input.call_count == 2

    @patch("passman_cli.prompts._interactive", return_value=True)
    @patch("builtins.input", return_value="")
    def test_confirm_empty_answer_is_default(self, _input, _):
        assert confirm("Create?", default=True) is True

    def test_confirm_with_yes(self):
        assert confirm_with(True)("Delete everything?", None, False) is True

    @patch("passman_cli.prompts._interactive", return_value=True)
    @patch("builtins.input", side_effect=["xml", "2"])
    def test_select(self, _input, _):
        assert select("Type:", ["json", "csv", "toml"]) == "csv"


class TestParser:
    """Tests for argument parsing."""

    def test_generate_defaults(self):
        args = build_parser().parse_args(["generate", "site"])
        assert args.special_chars is True
        assert args.length == 32

    def test_generate_flags(self):
        args = build_parser().parse_args(["generate", "site", "--no-special", "-l", "16"])
        assert args.special_chars is False
        assert args.length == 16

    def test_import_overwrite_tristate(self):
        parser = build_parser()
        assert parser.parse_args(["import", "f.json"]).overwrite is None
        assert parser.parse_args(["import", "f.json", "--overwrite"]).overwrite is True
        assert parser.parse_args(["import", "f.json", "--no-overwrite"]).overwrite is False

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


class TestCommands:
    """Tests for the cmd_* handlers through main()."""

    def test_list_fresh(self, temp_store_dir, capsys):
        """Test listing a fresh directory creates the store."""
        run(temp_store_dir, "list")

        assert "No passwords stored." in capsys.readouterr().out
        assert (temp_store_dir / PASSWORDS_FILE).exists()

    def test_set_get_list(self, temp_store_dir, capsys):
        run(temp_store_dir, "set", "github", "p@ss1", "-m", "hunter2")
        run(temp_store_dir, "get", "github", "-m", "hunter2")
        run(temp_store_dir, "list")

        out = capsys.readouterr().out
        assert "Password for key github saved." in out
        assert "p@ss1\n" in out
        assert "- github" in out
        assert VERSION_KEY not in out

    def test_get_missing(self, temp_store_dir, capsys):
        run(temp_store_dir, "list")
        with pytest.raises(SystemExit) as exc_info:
            run(temp_store_dir, "get", "nope", "-m", MASTER_PASSWORD)

        assert exc_info.value.code == 1
        assert "Error: No password stored for key nope" in capsys.readouterr().err

    def test_generate(self, temp_store_dir, capsys):
        run(temp_store_dir, "generate", "site", "--no-special", "-l", "16", "-m", "hunter2")

        password = capsys.readouterr().out.strip()
        assert len(password) == 16
        assert password.isalnum()

    def test_missing_store_declined(self, temp_store_dir, capsys):
        """Test a declined creation exits 1 without a file."""
        with patch("passman_cli.prompts._interactive", return_value=True):
            with patch("builtins.input", return_value="n"):
                with pytest.raises(SystemExit) as exc_info:
                    main(["--dir", str(temp_store_dir), "list"])

        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err
        assert not (temp_store_dir / PASSWORDS_FILE).exists()

    def test_incompatible_version_declined(self, temp_store_dir, store_config, capsys):
        """Test a version mismatch is not recreated without consent."""
        write_store_file(store_config, {VERSION_KEY: "0.0.1"})

        with patch("passman_cli.prompts._interactive", return_value=False):
            with pytest.raises(SystemExit):
                main(["--dir", str(temp_store_dir), "list"])

        assert "0.0.1" in capsys.readouterr().err
        assert "0.0.1" in store_config.path.read_text()

    def test_missing_key_non_interactive(self, temp_store_dir, capsys):
        with patch("passman_cli.prompts._interactive", return_value=False):
            with pytest.raises(SystemExit):
                run(temp_store_dir, "get", "-m", MASTER_PASSWORD)
        assert "stdin is not a terminal" in capsys.readouterr().err

    def test_export_import(self, temp_store_dir, capsys):
        run(temp_store_dir, "set", "github", "p@ss1", "-m", "hunter2")
        out = temp_store_dir / "backup.json"
        run(temp_store_dir, "export", str(out), "--with-version", "-m", "hunter2")

        data = json.loads(out.read_text())
        assert data == {"github": "p@ss1", VERSION_KEY: __version__}

        data["github"] = "changed"
        data["gitlab"] = "new"
        out.write_text(json.dumps(data))
        run(temp_store_dir, "import", str(out), "--no-overwrite", "-m", "hunter2")

        printed = capsys.readouterr().out
        assert "Password already exists for key github. Skipping..." in printed
        assert "Password for key gitlab imported." in printed
        assert "Import finished successfully." in printed

        run(temp_store_dir, "import", str(out), "--overwrite", "-m", "hunter2")
        assert "Password for key github overwritten (old value: 'p@ss1')." in capsys.readouterr().out

    def test_export_format_flag(self, temp_store_dir):
        run(temp_store_dir, "set", "github", "p@ss1", "-m", "hunter2")
        out = temp_store_dir / "backup.txt"
        run(temp_store_dir, "export", str(out), "--format", "csv", "-m", "hunter2")

        assert out.read_text() == "github,p@ss1\n"

    def test_operations_logged(self, temp_store_dir):
        """Test each successful command appends to the operation log."""
        run(temp_store_dir, "set", "github", "p@ss1", "-m", "hunter2")
        run(temp_store_dir, "get", "github", "-m", "hunter2")

        log = (temp_store_dir / LOG_FILE).read_text()
        assert "Set password for key github" in log
        assert "Retrieved password for key github" in log
        assert "p@ss1" not in log

    def test_stored_value_obscured(self, temp_store_dir, store_config):
        run(temp_store_dir, "set", "github", "p@ss1", "-m", "hunter2")

        from passman_cli.storage import CredentialStore
        table = CredentialStore(store_config).load()
        assert table["github"] != "p@ss1"
        assert decrypt(table["github"], "hunter2") == "p@ss1"
