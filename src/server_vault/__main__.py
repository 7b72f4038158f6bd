# Main Entry Point - Command line front end
#
# server-vault list [--show-secrets]   print the stored servers
# server-vault import FILE.json        replace the set with a JSON list
# server-vault delete HOST [HOST ...]  remove servers by host
#
# Settings come from the environment / .env (see config.py); --db overrides
# the database path.

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import VaultSettings
from .core import EventSeverity, EventType, configure_audit_logger
from .vault import CredentialRepository, ServerVaultAPI, VaultError, VaultManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="server-vault",
        description="Machine-bound encrypted store for remote server credentials",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="Vault database path (default: $SERVER_VAULT_DB or ~/.server-vault/servers.db)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"server-vault v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List stored servers")
    list_cmd.add_argument(
        "--show-secrets",
        action="store_true",
        help="Print decrypted secrets instead of masking them"
    )

    import_cmd = commands.add_parser(
        "import", help="Replace all servers with the records in a JSON file"
    )
    import_cmd.add_argument("file", help="JSON list of {label, host, account, secret}")

    delete_cmd = commands.add_parser("delete", help="Delete servers by host")
    delete_cmd.add_argument("hosts", nargs="+", help="Host(s) to remove")

    return parser


def _list(api: ServerVaultAPI, show_secrets: bool) -> int:
    servers = api.load_servers()
    if not servers:
        print("No servers stored.")
        return 0
    for server in servers:
        secret = server["secret"] if show_secrets else "********"
        print(f"{server['label']}\t{server['account']}@{server['host']}\t{secret}")
    return 0


def _import(api: ServerVaultAPI, path: str) -> int:
    try:
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read {path}: {e}", file=sys.stderr)
        return 2
    if not isinstance(rows, list):
        print(f"{path} must contain a JSON list of servers", file=sys.stderr)
        return 2

    ok, message = api.save_servers(rows)
    print(message, file=sys.stdout if ok else sys.stderr)
    return 0 if ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``server-vault`` command."""
    args = build_parser().parse_args(argv)

    settings = VaultSettings.from_env()
    logging.basicConfig(level=settings.log_level)
    audit = configure_audit_logger(settings.audit_dir)

    audit.log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="server-vault starting",
        details={"version": __version__, "command": args.command}
    )

    try:
        repository = CredentialRepository(args.db or settings.db_path)
        api = ServerVaultAPI(VaultManager(repository, audit=audit))

        if args.command == "list":
            return _list(api, args.show_secrets)
        if args.command == "import":
            return _import(api, args.file)
        removed = api.delete_servers(args.hosts)
        print(f"Deleted {removed} server(s).")
        return 0
    except VaultError as e:
        print(f"Error: {e}", file=sys.stderr)
        audit.log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"server-vault {args.command} failed: {type(e).__name__}"
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
