"""
Tests for the command-line interface.

Prompts are patched; every command runs against a temp LOCKBOX_HOME.
"""
import pyperclip
import pytest

from lockbox import cli, clipboard
from lockbox.clipboard import SecretClipboard

MASTER = "Secret123!"


@pytest.fixture
def home(monkeypatch, tmp_path):
    monkeypatch.setenv("LOCKBOX_HOME", str(tmp_path))
    monkeypatch.setenv("LOCKBOX_KDF_ITERATIONS", "1000")
    monkeypatch.delenv("LOCKBOX_CIPHER_BACKEND", raising=False)
    monkeypatch.delenv("LOCKBOX_CLIPBOARD_TIMEOUT", raising=False)
    return tmp_path


@pytest.fixture
def answers(monkeypatch):
    """Queue of answers returned by successive hidden prompts."""
    queue = []
    monkeypatch.setattr(cli, "prompt_hidden", lambda label: queue.pop(0))
    return queue


@pytest.fixture
def initialized(home, answers):
    answers.extend([MASTER, MASTER])
    assert cli.main(["init"]) == 0
    return home


class TestCli:

    def test_no_command_prints_help(self, home, capsys):
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_init_creates_vault(self, initialized):
        assert (initialized / "vault.json").exists()

    def test_init_mismatched_confirmation(self, home, answers, capsys):
        answers.extend([MASTER, "different"])
        assert cli.main(["init"]) == 1
        assert "do not match" in capsys.readouterr().err
        assert not (home / "vault.json").exists()

    def test_init_existing_verifies(self, initialized, answers, capsys):
        answers.append(MASTER)
        assert cli.main(["init"]) == 0
        assert "verified" in capsys.readouterr().out

    def test_create_and_get(self, initialized, answers, capsys):
        answers.append(MASTER)
        assert cli.main(["create", "email", "--value", "hunter2"]) == 0
        answers.append(MASTER)
        capsys.readouterr()
        assert cli.main(["get", "email"]) == 0
        assert capsys.readouterr().out.strip() == "hunter2"

    def test_wrong_passphrase(self, initialized, answers, capsys):
        answers.append("wrong")
        assert cli.main(["get", "email"]) == 1
        assert "Invalid passphrase" in capsys.readouterr().err

    def test_get_locked(self, initialized, answers, capsys):
        answers.extend([MASTER, MASTER, MASTER])
        cli.main(["create", "email", "--value", "hunter2"])
        cli.main(["lock", "email"])
        assert cli.main(["get", "email"]) == 1
        assert "locked" in capsys.readouterr().err

    def test_list(self, initialized, answers, capsys):
        answers.extend([MASTER] * 4)
        cli.main(["create", "github", "--value", "a"])
        cli.main(["create", "aws", "--value", "b"])
        cli.main(["lock", "aws"])
        capsys.readouterr()
        assert cli.main(["list"]) == 0
        out = capsys.readouterr().out
        assert out.index("aws") < out.index("github")
        assert "[LOCKED]" in out

    def test_list_empty(self, initialized, answers, capsys):
        answers.append(MASTER)
        assert cli.main(["list", "--search", "x"]) == 0
        assert "No matching entries" in capsys.readouterr().out

    def test_generate_prints(self, home, capsys):
        assert cli.main(["generate", "--length", "24", "--no-symbols"]) == 0
        secret = capsys.readouterr().out.strip()
        assert len(secret) == 24
        assert secret.isalnum()

    def test_generate_invalid(self, home, capsys):
        args = ["generate", "--no-lowercase", "--no-uppercase", "--no-digits", "--no-symbols"]
        assert cli.main(args) == 1
        assert "At least one character type" in capsys.readouterr().err

    def test_export_and_import(self, initialized, answers, capsys):
        answers.append(MASTER)
        cli.main(["create", "email", "--value", "hunter2"])
        answers.extend([MASTER, "Exp0rt!", "Exp0rt!"])
        assert cli.main(["export", "--name", "backup"]) == 0
        assert (initialized / "exports" / "backup.lbx").exists()
        answers.extend([MASTER, "Exp0rt!"])
        capsys.readouterr()
        assert cli.main(["import", "--name", "backup", "--diff"]) == 0
        out = capsys.readouterr().out
        assert "Import preview" in out
        assert "1 would be skipped" in out

    def test_import_replace_cancelled(self, initialized, answers, monkeypatch, capsys):
        answers.append(MASTER)
        cli.main(["create", "email", "--value", "hunter2"])
        answers.extend([MASTER, "Exp0rt!", "Exp0rt!"])
        cli.main(["export", "--name", "backup"])
        answers.extend([MASTER, "Exp0rt!"])
        monkeypatch.setattr("builtins.input", lambda *args: "n")
        assert cli.main(["import", "--name", "backup", "--replace"]) == 0
        assert "Import cancelled" in capsys.readouterr().out

    def test_export_list(self, initialized, capsys):
        assert cli.main(["export", "--list"]) == 0
        assert "No exports found" in capsys.readouterr().out

    def test_missing_vault(self, home, answers, capsys):
        answers.append(MASTER)
        assert cli.main(["get", "email"]) == 1
        assert "lockbox init" in capsys.readouterr().err


@pytest.fixture
def board(monkeypatch):
    """In-memory clipboard behind a daemon writer."""
    contents = {"text": ""}
    monkeypatch.setattr(pyperclip, "copy", lambda text: contents.update(text=text))
    monkeypatch.setattr(pyperclip, "paste", lambda: contents["text"])
    writer = SecretClipboard(daemon=True)
    monkeypatch.setattr(clipboard, "_clipboard", writer)
    yield contents
    writer.cancel()


class TestCliClipboard:

    def test_get_copy_no_clear(self, initialized, answers, board, capsys):
        answers.extend([MASTER, MASTER])
        cli.main(["create", "email", "--value", "hunter2"])
        capsys.readouterr()
        assert cli.main(["get", "email", "--copy", "--no-clear"]) == 0
        out = capsys.readouterr().out
        assert "hunter2" not in out
        assert "copied to clipboard" in out
        assert board["text"] == "hunter2"

    def test_get_copy_auto_clears(self, initialized, answers, board, capsys):
        answers.extend([MASTER, MASTER])
        cli.main(["create", "email", "--value", "hunter2"])
        assert cli.main(["get", "email", "--copy", "--timeout", "0"]) == 0
        clipboard.wait(2)
        assert board["text"] == ""
        assert "auto-clearing in 0s" in capsys.readouterr().out

    def test_get_copy_uses_configured_timeout(self, initialized, answers, board, monkeypatch):
        monkeypatch.setenv("LOCKBOX_CLIPBOARD_TIMEOUT", "60")
        answers.extend([MASTER, MASTER])
        cli.main(["create", "email", "--value", "hunter2"])
        assert cli.main(["get", "email", "--copy"]) == 0
        assert clipboard._clipboard.pending
        assert board["text"] == "hunter2"

    def test_generate_copy(self, home, board, monkeypatch, capsys):
        monkeypatch.setenv("LOCKBOX_CLIPBOARD_TIMEOUT", "60")
        assert cli.main(["generate", "--length", "20", "--copy"]) == 0
        assert len(board["text"]) == 20
        assert board["text"] not in capsys.readouterr().out

    def test_clipboard_unavailable(self, initialized, answers, monkeypatch, capsys):
        def broken(text):
            raise pyperclip.PyperclipException("no clipboard")

        monkeypatch.setattr(pyperclip, "copy", broken)
        answers.extend([MASTER, MASTER])
        cli.main(["create", "email", "--value", "hunter2"])
        assert cli.main(["get", "email", "--copy"]) == 1
        assert "no clipboard" in capsys.readouterr().err
