#!/usr/bin/env python3
"""
Load workflow definitions from YAML into the approval_workflows table.

Usage:
    python scripts/load_workflows.py [PATH] [--dry-run]
        [--database-url URL] [--actor-id UUID] [--create-tables]

PATH is a YAML file or a directory of *.yaml files; it defaults to the
bundled approval_config/sets/.  The database URL comes from
--database-url, then DATABASE_URL.

The script:
  1. Parses every workflow in PATH
  2. Validates each one, printing errors and warnings
  3. Unless --dry-run, upserts every definition in one transaction

Exit status is 1 if any definition is invalid; nothing is written then.
"""

import argparse
import os
import sys
from pathlib import Path
from uuid import UUID

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from approval_config import DEFAULT_SETS_DIR
from approval_config.loader import parse_workflow_file, workflow_files
from approval_config.validator import validate_definition

SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Validate and load approval workflow definitions")
    p.add_argument(
        "path",
        nargs="?",
        default=str(DEFAULT_SETS_DIR),
        help="YAML file or directory (default: bundled sample set)",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate only; do not touch the database",
    )
    p.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="Database URL (default: $DATABASE_URL)",
    )
    p.add_argument(
        "--actor-id",
        type=UUID,
        default=SYSTEM_ACTOR_ID,
        help="User id recorded as creator/editor of the definitions",
    )
    p.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the approval tables before loading",
    )
    return p.parse_args(argv)


def load(path: Path):
    """Parse and validate every workflow under ``path``.

    Returns ``(definitions, error_count)``.
    """
    definitions = []
    error_count = 0
    for file_path in workflow_files(path):
        print(f"Reading {file_path}")
        for definition in parse_workflow_file(file_path):
            result = validate_definition(definition)
            status = "ok" if result.is_valid else "INVALID"
            print(
                f"  [{status}] {definition.target_type}: {definition.name} "
                f"(priority={definition.priority}, steps={definition.step_count})"
            )
            for err in result.errors:
                print(f"    ERROR: {err}")
            for w in result.warnings:
                print(f"    WARNING: {w}")
            error_count += len(result.errors)
            definitions.append(definition)
    return definitions, error_count


def main(argv=None) -> int:
    args = _parse_args(argv)
    path = Path(args.path)

    try:
        definitions, error_count = load(path)
    except FileNotFoundError as exc:
        print(f"Error: not found: {exc}", file=sys.stderr)
        return 1

    if error_count:
        print(f"{error_count} validation error(s); nothing loaded.", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Dry run: {len(definitions)} workflow(s) valid.")
        return 0

    if not args.database_url:
        print("Error: no database URL (use --database-url or DATABASE_URL)", file=sys.stderr)
        return 1

    from approval_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from approval_kernel.services.workflow_service import WorkflowDefinitionService

    init_engine_from_url(args.database_url)
    if args.create_tables:
        create_tables()

    with session_scope() as session:
        service = WorkflowDefinitionService(session)
        for definition in definitions:
            service.save_definition(definition, args.actor_id)

    print(f"Loaded {len(definitions)} workflow(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
