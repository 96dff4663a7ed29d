"""Operator CLI for creating CRM accounts and listing academic years.

This module serves as a CLI wrapper around gateway.core.accounts_service, so
accounts created here go through the same validation and linking as the API.

Examples:
    python scripts/accounts.py academic-years
    python scripts/accounts.py parent --field firstName=Sara --field gendercode=2 ...
    python scripts/accounts.py student --field firstName=Omar ... --father-id <guid>
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gateway.config import load_settings
from gateway.core.accounts_service import build_services
from gateway.core.dynamics import DynamicsError
from gateway.core.validators import ValidationError


def parse_fields(pairs: Sequence[str]) -> dict[str, str]:
    """Turn ``["firstName=Ada", "email=a@b.c"]`` into a dict."""
    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        fields[key.strip()] = value
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CRM account gateway helper")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("academic-years", help="List active academic years")

    for kind in ("teacher", "parent", "student"):
        sp = sub.add_parser(kind, help=f"Create a {kind} contact")
        sp.add_argument("--field", action="append", default=[], metavar="KEY=VALUE",
                        help="Request field, repeatable (e.g. --field firstName=Ada)")
        sp.add_argument("--json", dest="json_file", type=Path,
                        help="Read request fields from a JSON file (merged before --field)")
        if kind == "student":
            sp.add_argument("--father-id", help="Father contact GUID to link")
            sp.add_argument("--mother-id", help="Mother contact GUID to link")

    return parser


def main(argv: Optional[Sequence[str]] = None, services=None) -> int:
    """Command-line entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    services = services or build_services(load_settings())

    if args.cmd == "academic-years":
        try:
            years = services.academic_years.list_active()
        except DynamicsError as e:
            print(f"[academic-years] Error: {e}", file=sys.stderr)
            return 1
        print(json.dumps(years, indent=2, ensure_ascii=False))
        return 0

    payload: dict = {}
    if args.json_file:
        payload.update(json.loads(args.json_file.read_text(encoding="utf-8")))
    try:
        payload.update(parse_fields(args.field))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    accounts = services.accounts
    try:
        if args.cmd == "teacher":
            result = accounts.create_teacher(payload)
        elif args.cmd == "parent":
            result = accounts.create_parent(payload)
        else:
            if args.father_id:
                payload["fatherId"] = args.father_id
            if args.mother_id:
                payload["motherId"] = args.mother_id
            result = accounts.create_student(payload)
    except ValidationError as e:
        print(f"[{args.cmd}] {e.message}", file=sys.stderr)
        return 2
    except DynamicsError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        return 1

    print(f"[{args.cmd}] Created contact {result['guid']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
