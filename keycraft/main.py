"""
Command-line entry point for Keycraft.

Usage:
    keycraft list                   # Masked listing
    keycraft show ID                # One masked entry
    keycraft add --name N --vendor V --secret S [...]
    keycraft update ID [--name N ...]
    keycraft delete ID
    keycraft reveal ID              # Print the raw secret
    keycraft serve                  # JSON request/response lines on stdin/stdout
"""

import argparse
import getpass
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, TextIO

from . import config
from .commands import CommandSurface
from .crypto import VaultKey
from .engine import CredentialStore
from .errors import KeycraftError
from .storage import PersistenceLog

logger = logging.getLogger(__name__)

# argparse destination -> request field
_FIELD_ARGS = {
    "name": "name",
    "vendor": "vendor",
    "secret": "secret_value",
    "base_url": "base_url",
    "doc_url": "doc_url",
    "snippets": "code_snippets",
    "tags": "tags",
    "notes": "notes",
}


class KeycraftApp:
    """Wires the persistence log, engine and command surface for one vault."""

    def __init__(self, vault_path: str, key: Optional[VaultKey]):
        self.vault_path = vault_path
        self.store = CredentialStore(PersistenceLog(vault_path, key=key))
        self.commands = CommandSurface(self.store)

    def __enter__(self) -> 'KeycraftApp':
        self.store.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self):
        """Clean up resources."""
        if self.store.is_open:
            self.store.close()

    def serve(self, stdin: TextIO, stdout: TextIO) -> int:
        """Answer one JSON request per input line until EOF."""
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            try:
                request = json.loads(line)
            except ValueError as e:
                response = {"ok": False, "error": {"kind": "bad_request", "message": f"invalid JSON: {e}"}}
            else:
                response = self.commands.dispatch(request)
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()
        return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="keycraft", description=config.APP_DESCRIPTION)
    parser.add_argument("--version", action="version", version=f"{config.APP_NAME} {config.APP_VERSION}")
    parser.add_argument("--vault", default=None, help="Vault file (default: $KEYCRAFT_VAULT_PATH or ~/.keycraft/vault.kcv)")
    parser.add_argument("--plaintext", action="store_true", help="Store the vault unencrypted")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("list", help="List entries with masked secrets")

    show_parser = subparsers.add_parser("show", help="Show one entry with its masked secret")
    show_parser.add_argument("id")

    add_parser = subparsers.add_parser("add", help="Add an entry")
    _add_field_args(add_parser, required=True)

    update_parser = subparsers.add_parser("update", help="Update an entry; omitted fields are kept")
    update_parser.add_argument("id")
    _add_field_args(update_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete an entry")
    delete_parser.add_argument("id")

    reveal_parser = subparsers.add_parser("reveal", help="Print the raw secret of an entry")
    reveal_parser.add_argument("id")

    subparsers.add_parser("serve", help="Serve JSON requests on stdin/stdout")
    return parser


def _add_field_args(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--name", required=required)
    parser.add_argument("--vendor", required=required)
    parser.add_argument("--secret", help="Secret value, or '-' to read it from stdin (prompted if omitted)")
    parser.add_argument("--base-url", dest="base_url")
    parser.add_argument("--doc-url", dest="doc_url")
    parser.add_argument("--snippets")
    parser.add_argument("--tags", help="Comma-separated labels")
    parser.add_argument("--notes")


def _vault_key(args: argparse.Namespace) -> Optional[VaultKey]:
    if args.plaintext:
        return None
    password = os.environ.get(config.MASTER_PASSWORD_ENV)
    if password is None:
        password = getpass.getpass("Master password: ")
    if not password:
        raise KeycraftError("a master password is required (or pass --plaintext)")
    return VaultKey.from_password(password)


def _read_secret(value: Optional[str], prompt_if_missing: bool) -> Optional[str]:
    if value == "-":
        return sys.stdin.readline().rstrip("\r\n")
    if value is None and prompt_if_missing:
        return getpass.getpass("Secret: ")
    return value


def _field_payload(args: argparse.Namespace, base: Dict[str, Any]) -> Dict[str, Any]:
    payload = dict(base)
    for arg_name, field in _FIELD_ARGS.items():
        value = getattr(args, arg_name)
        if value is not None:
            payload[field] = value
    return payload


def _print_views(views: List[Dict[str, Any]], as_json: bool, out: TextIO) -> None:
    if as_json:
        out.write(json.dumps(views, indent=2) + "\n")
        return
    for view in views:
        tags = f"  [{view['tags']}]" if view.get("tags") else ""
        out.write(f"{view['id']}  {view['name']}  {view['vendor']}  {view['masked_value']}{tags}\n")


def run(args: argparse.Namespace, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    vault_path = args.vault or config.default_vault_path()
    with KeycraftApp(vault_path, _vault_key(args)) as app:
        commands = app.commands
        if args.command == "serve":
            return app.serve(sys.stdin, out)
        if args.command == "list":
            _print_views(commands.list_keys(), args.json, out)
        elif args.command == "show":
            _print_views([app.store.get(args.id).to_dict()], args.json, out)
        elif args.command == "add":
            args.secret = _read_secret(args.secret, prompt_if_missing=True)
            view = commands.add_key(_field_payload(args, {}))
            _print_views([view], args.json, out)
        elif args.command == "update":
            args.secret = _read_secret(args.secret, prompt_if_missing=False)
            current = app.store.get(args.id).to_dict()
            current["secret_value"] = commands.reveal_key(args.id)
            view = commands.update_key(args.id, _field_payload(args, current))
            _print_views([view], args.json, out)
        elif args.command == "delete":
            commands.delete_key(args.id)
        elif args.command == "reveal":
            out.write(commands.reveal_key(args.id) + "\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=config.LOG_FORMAT)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return run(args)
    except KeycraftError as e:
        logger.debug("Command failed", exc_info=True)
        sys.stderr.write(f"error: {e}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
