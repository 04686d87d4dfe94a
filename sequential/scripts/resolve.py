#!/usr/bin/env python3
"""Resolve selected files and folders into their ordered import list.

Usage:
  python -m sequential.scripts.resolve ~/Pictures
  python -m sequential.scripts.resolve ~/Desktop/a.png ~/Desktop --hidden
  python -m sequential.scripts.resolve ~/Pictures --no-recursive --json
  python -m sequential.scripts.resolve ~/Pictures --save --title "Holiday"
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from sequential.db import connection, sqlite_migrations
from sequential.preferences import preferences_manager
from sequential.resolution.errors import TotalResolutionFailure
from sequential.resolution.orchestrator import ResolutionOrchestrator, ResolutionResult
from sequential.services.collections import CollectionService, display_path, root_warning


def _payload(result: ResolutionResult) -> dict[str, Any]:
    return {
        "count": len(result.tokens),
        "items": [
            {
                "rootIndex": entry.root_index,
                "path": display_path(token.path),
                "source": display_path(entry.source),
                "classification": token.classification.value,
            }
            for entry, token in zip(result.entries, result.tokens)
        ],
        "warnings": [root_warning(error).model_dump() for error in result.errors],
    }


async def _save(paths: list[str], title: str, include_hidden: bool, recursive: bool) -> dict[str, Any]:
    db = await connection.get_connection()
    try:
        await sqlite_migrations.run_migrations(db)
        collection = await CollectionService(db).create_collection(
            paths,
            title=title,
            include_hidden=include_hidden,
            recursive=recursive,
        )
    finally:
        await connection.close_connection()
    return {
        "id": collection.id,
        "count": len(collection.items),
        "items": [{"path": item.path, "classification": item.classification} for item in collection.items],
        "warnings": [warning.model_dump() for warning in collection.warnings],
    }


def main(argv: list[str] | None = None) -> int:
    preferences = preferences_manager.get()

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("paths", nargs="+")
    parser.add_argument("--hidden", action="store_true", default=preferences.importHidden)
    parser.add_argument("--no-recursive", dest="recursive", action="store_false", default=preferences.importSubdirectories)
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--save", action="store_true")
    parser.add_argument("--title", default="")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    paths = [str(Path(path).expanduser().absolute()) for path in args.paths]

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        if args.save:
            payload = asyncio.run(_save(paths, args.title, args.hidden, args.recursive))
        else:
            result = asyncio.run(
                ResolutionOrchestrator().resolve(
                    list(enumerate(paths)),
                    include_hidden=args.hidden,
                    recursive=args.recursive,
                )
            )
            payload = _payload(result)
    except TotalResolutionFailure as exc:
        if args.json:
            print(json.dumps({"error": str(exc), "warnings": [root_warning(e).model_dump() for e in exc.errors]}, indent=2))
        else:
            print(f"Nothing could be resolved: {exc}")
            for error in exc.errors:
                warning = root_warning(error)
                print(f"  [{warning.rootIndex}] {warning.errorKind}: {warning.path} {warning.message}")
        return 1

    if args.json:
        print(json.dumps(payload, indent=2))
        return 0

    if "id" in payload:
        print(f"Saved collection: {payload['id']}")
    print(f"Resolved: {payload['count']}")
    print("")
    for idx, item in enumerate(payload["items"], start=1):
        print(f"{idx:04d}. [{item['classification']}] {item['path']}")
    if payload["warnings"]:
        print("")
        print(f"Warnings: {len(payload['warnings'])}")
        for warning in payload["warnings"]:
            print(f"    [{warning['rootIndex']}] {warning['errorKind']}: {warning['path']} {warning['message']}".rstrip())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
