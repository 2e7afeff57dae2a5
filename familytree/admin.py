"""CLI admin tool for the family tree store.

Usage:
    python -m familytree.admin hash-key --key=secret
    python -m familytree.admin check
    python -m familytree.admin relationship <id-a> <id-b>
    python -m familytree.admin import family.json [--key=secret]
    python -m familytree.admin export [--out=family.json]

The store is chosen from the environment (``DATABASE_URL`` or
``FAMILYTREE_DATA_FILE``). ``import`` needs the admin key, taken from
``--key`` or ``ADMIN_KEY``.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .auth import hash_key
from .errors import FamilyTreeError
from .normalize import check_invariants
from .service import TreeService
from .store import store_from_env


def _load_tree() -> TreeService:
    tree = TreeService(store_from_env())
    tree.load()
    return tree


def cmd_hash_key(args: argparse.Namespace) -> None:
    print(hash_key(args.key))


def cmd_check(args: argparse.Namespace) -> None:
    tree = _load_tree()
    problems = check_invariants(tree.graph)
    print(f"{len(tree.graph)} people, {len(problems)} problem(s)")
    for p in problems:
        print(f"  {p}")
    if problems:
        raise SystemExit(1)


def cmd_relationship(args: argparse.Namespace) -> None:
    tree = _load_tree()
    rel = tree.resolve(args.a, args.b)
    print(tree.describe(args.a, args.b))
    if args.verbose:
        print(json.dumps(rel.to_dict(), indent=2, ensure_ascii=False))


def cmd_import(args: argparse.Namespace) -> None:
    doc = json.loads(Path(args.file).read_text(encoding="utf-8"))
    tree = TreeService(store_from_env())
    graph = tree.import_document(args.key or os.environ.get("ADMIN_KEY"), doc)
    print(f"Imported {len(graph)} people.")


def cmd_export(args: argparse.Namespace) -> None:
    tree = _load_tree()
    payload = json.dumps(tree.export_document(), indent=2, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(payload + "\n", encoding="utf-8")
        print(f"Exported {len(tree.graph)} people to {args.out}.")
    else:
        print(payload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="familytree-admin", description="Family tree admin tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("hash-key", help="print a bcrypt hash for ADMIN_KEY_HASH")
    p.add_argument("--key", required=True)
    p.set_defaults(func=cmd_hash_key)

    p = sub.add_parser("check", help="load the stored graph and report invariant problems")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("relationship", help="describe how person A is related to person B")
    p.add_argument("a")
    p.add_argument("b")
    p.set_defaults(func=cmd_relationship)

    p = sub.add_parser("import", help="replace the stored graph with a JSON document")
    p.add_argument("file")
    p.add_argument("--key", default=None)
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="write the stored graph as JSON")
    p.add_argument("--out", default=None)
    p.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except FamilyTreeError as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2) from e
    except json.JSONDecodeError as e:
        print(f"error: invalid JSON: {e}", file=sys.stderr)
        raise SystemExit(2) from e


if __name__ == "__main__":
    main()
