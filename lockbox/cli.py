"""
Lockbox CLI - Command-line interface.

Usage:
    lockbox init                          # Create the vault
    lockbox create <name> [--value V]     # Store a secret
    lockbox get <name> [--copy]           # Print or copy a secret
    lockbox list [--search S] [--locked|--unlocked]
    lockbox generate --length 24 --key db # Generate and store a secret
    lockbox export --name backup          # Encrypted backup
    lockbox import --name backup --diff   # Preview a restore
"""
import sys
import argparse
import logging
from getpass import getpass
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__, clipboard
from .exceptions import StorageError, VaultError
from .generator import DEFAULT_LENGTH, CharacterClass, generate
from .storage import blob_exists
from .vault import (
    ImportMode,
    LockFilter,
    VaultConfig,
    VaultEngine,
    export_vault,
    import_file,
    list_exports,
)

logger = logging.getLogger("lockbox")

console = Console()
err_console = Console(stderr=True)


def prompt_hidden(label: str) -> str:
    """Read a secret from the terminal without echo."""
    return getpass(f"{label}: ")


def prompt_new_passphrase(label: str) -> str:
    """Prompt twice and require both entries to match."""
    passphrase = prompt_hidden(label)
    confirm = prompt_hidden("Confirm")
    if passphrase != confirm:
        raise VaultError("Passphrases do not match")
    return passphrase


def _unlock(config: VaultConfig) -> VaultEngine:
    return VaultEngine.unlock(config.vault_path, prompt_hidden("Master passphrase"))


def _resolve_file(config: VaultConfig, name: Optional[str], path: Optional[str]) -> Path:
    if path:
        return Path(path).expanduser()
    if name:
        return config.export_path(name)
    raise StorageError("Give an export --name or a file path")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_init(args, config: VaultConfig) -> None:
    if blob_exists(config.vault_path):
        console.print("Vault already exists. Verifying passphrase...")
        if VaultEngine.verify(config.vault_path, prompt_hidden("Master passphrase")):
            console.print("[green]Master passphrase verified[/green]")
            return
        raise VaultError("Invalid passphrase or corrupted data")
    passphrase = prompt_new_passphrase("New master passphrase")
    with VaultEngine.init(config.vault_path, passphrase, config):
        pass
    console.print(f"[green]Vault created at {config.vault_path}[/green]")


def cmd_create(args, config: VaultConfig) -> None:
    value = args.value if args.value is not None else prompt_hidden("Value")
    with _unlock(config) as vault:
        vault.create(args.name, value)
    console.print(f"[green]Entry '{escape(args.name)}' created[/green]")


def _copy(secret: str, clear_after: Optional[int], what: str) -> None:
    clipboard.place(secret, clear_after)
    if clear_after is None:
        console.print(f"[green]{what} copied to clipboard[/green]")
    else:
        console.print(
            f"[green]{what} copied to clipboard (auto-clearing in {clear_after}s)[/green]"
        )


def cmd_get(args, config: VaultConfig) -> None:
    with _unlock(config) as vault:
        value = vault.get(args.name)
    if args.copy:
        timeout = config.clipboard_timeout if args.timeout is None else args.timeout
        _copy(value, None if args.no_clear else timeout, "Value")
        return
    console.print(value, markup=False, highlight=False)


def cmd_update(args, config: VaultConfig) -> None:
    value = args.value if args.value is not None else prompt_hidden("New value")
    with _unlock(config) as vault:
        vault.update(args.name, value)
    console.print(f"[green]Entry '{escape(args.name)}' updated[/green]")


def cmd_list(args, config: VaultConfig) -> None:
    lock_filter = None
    if args.locked:
        lock_filter = LockFilter.LOCKED
    elif args.unlocked:
        lock_filter = LockFilter.UNLOCKED
    with _unlock(config) as vault:
        entries = vault.list_entries(args.search, lock_filter)
    if not entries:
        if args.search or lock_filter:
            console.print("No matching entries found.")
        else:
            console.print("No entries found.")
        return
    for entry in entries:
        status = " [yellow]\\[LOCKED][/yellow]" if entry.locked else ""
        console.print(f"  - {escape(entry.name)}{status}")


def cmd_lock(args, config: VaultConfig) -> None:
    with _unlock(config) as vault:
        locked = vault.toggle_lock(args.name)
    state = "locked" if locked else "unlocked"
    console.print(f"[green]Entry '{escape(args.name)}' {state}[/green]")


def cmd_delete(args, config: VaultConfig) -> None:
    with _unlock(config) as vault:
        vault.delete(args.name)
    console.print(f"[green]Entry '{escape(args.name)}' deleted[/green]")


def cmd_generate(args, config: VaultConfig) -> None:
    classes = set(CharacterClass)
    if args.no_lowercase:
        classes.discard(CharacterClass.LOWERCASE)
    if args.no_uppercase:
        classes.discard(CharacterClass.UPPERCASE)
    if args.no_digits:
        classes.discard(CharacterClass.DIGIT)
    if args.no_symbols:
        classes.discard(CharacterClass.SYMBOL)
    secret = generate(args.length, classes)
    if args.key:
        with _unlock(config) as vault:
            vault.create(args.key, secret)
        console.print(f"[green]Generated secret saved as '{escape(args.key)}'[/green]")
    if args.copy:
        _copy(secret, config.clipboard_timeout, "Generated secret")
    elif not args.key:
        console.print(secret, markup=False, highlight=False)


def cmd_export(args, config: VaultConfig) -> None:
    if args.list:
        exports = list_exports(config.exports_dir)
        if not exports:
            console.print("No exports found.")
        for path in exports:
            console.print(f"  - {escape(path.stem)}  ({escape(str(path))})")
        return
    target = _resolve_file(config, args.name, args.output)
    with _unlock(config) as vault:
        passphrase = prompt_new_passphrase("Export passphrase")
        export = export_vault(vault, passphrase, target, force=args.force, config=config)
    console.print(f"[green]Exported {export.entry_count} entries to {target}[/green]")


def cmd_import(args, config: VaultConfig) -> None:
    source = _resolve_file(config, args.name, args.input)
    mode = ImportMode.MERGE
    if args.replace:
        mode = ImportMode.REPLACE
    elif args.diff:
        mode = ImportMode.DIFF
    with _unlock(config) as vault:
        passphrase = prompt_hidden("Export passphrase")
        report = import_file(vault, source, passphrase, mode)
        if report.requires_confirmation:
            console.print(
                f"{report.updated_count} existing entries will be overwritten: "
                f"{escape(', '.join(report.updated))}"
            )
            answer = console.input("Continue? \\[y/N]: ").strip().lower()
            if answer not in ("y", "yes"):
                console.print("Import cancelled.")
                return
            report = import_file(vault, source, passphrase, mode, confirmed=True)
    title = "Import preview" if mode is ImportMode.DIFF else "Import complete"
    console.print(f"[bold]{title}[/bold] ({report.total_in_export} entries in file)")
    verb = "would be" if mode is ImportMode.DIFF else "were"
    for label, names in (
        ("added", report.added),
        ("updated", report.updated),
        ("skipped", report.skipped),
    ):
        console.print(f"  {len(names)} {verb} {label}" + (f": {escape(', '.join(names))}" if names else ""))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lockbox",
        description="Lockbox - local secrets vault.",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"lockbox {__version__}",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    p = subparsers.add_parser("init", help="Create the vault or verify its passphrase")
    p.set_defaults(func=cmd_init)

    p = subparsers.add_parser("create", help="Store a new secret")
    p.add_argument("name")
    p.add_argument("--value", help="Secret value (prompted when omitted)")
    p.set_defaults(func=cmd_create)

    p = subparsers.add_parser("get", help="Print a secret")
    p.add_argument("name")
    p.add_argument("--copy", "-c", action="store_true", help="Copy to clipboard instead of printing")
    p.add_argument("--no-clear", action="store_true", help="Do not auto-clear the clipboard (with --copy)")
    p.add_argument("--timeout", "-t", type=int, help="Seconds before the clipboard is cleared")
    p.set_defaults(func=cmd_get)

    p = subparsers.add_parser("update", help="Change a secret's value")
    p.add_argument("name")
    p.add_argument("--value", help="New value (prompted when omitted)")
    p.set_defaults(func=cmd_update)

    p = subparsers.add_parser("list", help="List entry names")
    p.add_argument("--search", "-s", help="Case-insensitive name filter")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--locked", action="store_true", help="Only locked entries")
    group.add_argument("--unlocked", action="store_true", help="Only unlocked entries")
    p.set_defaults(func=cmd_list)

    p = subparsers.add_parser("lock", help="Toggle an entry's lock")
    p.add_argument("name")
    p.set_defaults(func=cmd_lock)

    p = subparsers.add_parser("delete", help="Delete an entry")
    p.add_argument("name")
    p.set_defaults(func=cmd_delete)

    p = subparsers.add_parser("generate", help="Generate a random secret")
    p.add_argument("--length", "-l", type=int, default=DEFAULT_LENGTH)
    p.add_argument("--no-lowercase", action="store_true")
    p.add_argument("--no-uppercase", action="store_true")
    p.add_argument("--no-digits", action="store_true")
    p.add_argument("--no-symbols", action="store_true")
    p.add_argument("--key", "-k", help="Store the secret under this name")
    p.add_argument("--copy", "-c", action="store_true", help="Copy to clipboard instead of printing")
    p.set_defaults(func=cmd_generate)

    p = subparsers.add_parser("export", help="Write an encrypted backup")
    target = p.add_mutually_exclusive_group()
    target.add_argument("--name", "-n", help="Export name inside the exports directory")
    target.add_argument("--output", "-o", help="Export file path")
    p.add_argument("--list", action="store_true", help="List existing exports")
    p.add_argument("--force", "-f", action="store_true", help="Overwrite an existing file")
    p.set_defaults(func=cmd_export)

    p = subparsers.add_parser("import", help="Restore from an encrypted backup")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--name", "-n", help="Export name inside the exports directory")
    source.add_argument("--input", "-i", help="Export file path")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--replace", action="store_true", help="Overwrite matching entries")
    mode.add_argument("--diff", action="store_true", help="Preview without changing anything")
    p.set_defaults(func=cmd_import)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    func: Optional[Callable] = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        config = VaultConfig.from_env()
        func(args, config)
    except (VaultError, ValueError) as err:
        err_console.print(f"[red]Error:[/red] {escape(str(err))}", highlight=False)
        return 1
    except KeyboardInterrupt:
        err_console.print("Cancelled.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
