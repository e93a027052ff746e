"""
docledger CLI — Operator commands for a registry deployment.

Commands:
- docledger init       — Create registry tables and seed the document counter
- docledger validate   — Validate docledger.yaml
- docledger stats      — Print registry statistics as the configured administrator
- docledger audit      — Print structured audit-log entries
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Optional

logger = logging.getLogger("docledger.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="docledger",
        description="docledger — Document ownership registry",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # docledger init
    init_parser = subparsers.add_parser("init", help="Create registry tables")
    init_parser.add_argument(
        "--config", default="docledger.yaml", help="Path to docledger.yaml (default: docledger.yaml)"
    )

    # docledger validate
    validate_parser = subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.add_argument("--config", default="docledger.yaml", help="Path to docledger.yaml")

    # docledger stats
    stats_parser = subparsers.add_parser("stats", help="Show registry statistics")
    stats_parser.add_argument("--config", default="docledger.yaml", help="Path to docledger.yaml")
    stats_parser.add_argument("--height", type=int, default=0, help="Current ledger height (default: 0)")

    # docledger audit
    audit_parser = subparsers.add_parser("audit", help="Show audit-log entries")
    audit_parser.add_argument("--config", default="docledger.yaml", help="Path to docledger.yaml")
    audit_parser.add_argument("--doc-id", type=int, help="Only entries for this document")
    audit_parser.add_argument("--principal", help="Only entries attributed to this principal")
    audit_parser.add_argument(
        "--kind", choices=["document", "permission", "denial", "system"],
        help="Only entries of this kind (default: all)",
    )
    audit_parser.add_argument("--days", type=int, default=7, help="Days to look back (default: 7)")
    audit_parser.add_argument("--limit", type=int, default=50, help="Maximum entries (default: 50)")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "stats":
        return cmd_stats(args)
    elif args.command == "audit":
        return cmd_audit(args)
    else:
        parser.print_help()
        return 0


def _load(config_path: str):
    from pydantic import ValidationError
    from yaml import YAMLError

    from docledger.engine.config import load_config

    try:
        return load_config(config_path)
    except (ValidationError, YAMLError) as e:
        print(f"[ERROR] Failed to load config: {e}")
        return None


def cmd_init(args: argparse.Namespace) -> int:
    """
    Bootstrap the registry database:
    1. Load config from docledger.yaml
    2. Create tables (idempotent)
    3. Seed the document counter at 0 if missing
    """
    from sqlalchemy.exc import SQLAlchemyError

    from docledger.db.session import init_registry_db

    config = _load(args.config)
    if config is None:
        return 1
    print(f"[OK] Loaded config from {args.config}")

    try:
        factory = init_registry_db(config.database.url, create_tables=True)
    except SQLAlchemyError as e:
        print(f"[ERROR] Database initialisation failed: {e}")
        return 1

    factory.kw["bind"].dispose()
    print(f"[OK] Registry tables ready at {config.database.url}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate docledger.yaml."""
    config = _load(args.config)
    if config is None:
        return 1

    errors = 0
    if not config.registry.administrator:
        print("[ERROR] registry.administrator is not set")
        errors += 1
    if config.store.backend == "memory" and config.environment == "prod":
        print("[WARN] memory store in prod: registry state is lost on restart")
    if not config.registry.persist_grants:
        print("[WARN] registry.persist_grants is false: grant_access stores nothing")

    print(f"\n{'Configuration valid!' if errors == 0 else f'{errors} error(s) found.'}")
    return 1 if errors else 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Run get_statistics as the configured administrator."""
    from docledger.engine.audit import close_audit_trail
    from docledger.engine.errors import DocLedgerError
    from docledger.engine.height import LedgerHeight
    from docledger.runtime import build_registry

    config = _load(args.config)
    if config is None:
        return 1

    administrator = config.registry.administrator
    try:
        registry = build_registry(
            config,
            height_provider=LedgerHeight(args.height),
            identity_provider=lambda: administrator,
        )
        result = registry.get_statistics()
        registry.store.close()
    except DocLedgerError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        close_audit_trail()

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def cmd_audit(args: argparse.Namespace) -> int:
    """Print audit entries, newest first."""
    from docledger.engine.audit import AuditLog

    config = _load(args.config)
    if config is None:
        return 1

    entries = AuditLog(config.logging.directory).query(
        doc_id=args.doc_id,
        principal=args.principal,
        kind=args.kind,
        days=args.days,
        limit=args.limit,
    )
    if not entries:
        print("[WARN] No audit entries found.")
        return 0
    for entry in entries:
        print(json.dumps(entry, default=str))
    return 0
