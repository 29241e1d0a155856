"""
Command-line interface for openmemory.

Sub-commands
------------
save      – Save a piece of text as a memory.
ingest    – Save a response and the key facts found in it.
query     – Retrieve the most relevant memories for a query.
search    – Filtered search, optionally ranked by a query.
list      – List stored memories, newest first.
update    – Change a memory's content or fields.
delete    – Delete a memory by its ID.
clear     – Delete every memory.
dedupe    – Remove memories with matching keyword signatures.
stats     – Print counts per source and the time span covered.
analytics – Print a breakdown by category, platform, type and keyword.
export    – Write the collection as JSON, CSV or text.
import    – Load memories from a JSON export.
count     – Print the number of stored memories.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from typing import Any

from .config import Settings, configure_logging
from .context import StaticContext, detect_platform
from .exchange import EXPORT_FORMATS
from .memory import DATE_RANGES, MemoryManager
from .store import FileBlobStore


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openmemory",
        description="Local memory for AI conversations.",
    )
    parser.add_argument(
        "--db",
        default=settings.db_path,
        metavar="PATH",
        help=f"Directory holding the memory store (default: {settings.db_path}).",
    )
    parser.add_argument(
        "--key",
        default=settings.storage_key,
        metavar="NAME",
        help=f"Storage key for the collection (default: {settings.storage_key}).",
    )
    parser.add_argument(
        "--max-memories",
        type=int,
        default=settings.max_memories,
        metavar="N",
        help=f"Capacity of the collection (default: {settings.max_memories}).",
    )
    parser.add_argument(
        "--location",
        default=settings.location,
        metavar="URL",
        help="Location new memories are attributed to; keys conversations.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level.")

    sub = parser.add_subparsers(dest="command", required=True)

    # save
    p_save = sub.add_parser("save", help="Save text as a memory.")
    p_save.add_argument("text", nargs="?", help="Text to save (reads stdin if omitted).")
    p_save.add_argument("--type", default=None, help="Free-form memory type.")
    p_save.add_argument("--platform", default=None, help="Platform the text came from.")
    p_save.add_argument(
        "--meta",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra metadata field (repeatable).",
    )

    # ingest
    p_ingest = sub.add_parser("ingest", help="Save a response and its key facts.")
    p_ingest.add_argument("text", nargs="?", help="Text to ingest (reads stdin if omitted).")
    p_ingest.add_argument("--platform", default=None, help="Platform the text came from.")

    # query
    p_query = sub.add_parser("query", help="Retrieve relevant memories.")
    p_query.add_argument("query", help="Query text.")
    p_query.add_argument(
        "-n",
        type=int,
        default=5,
        metavar="N",
        help="Number of results to return (default: 5).",
    )
    p_query.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # search
    p_search = sub.add_parser("search", help="Filtered search.")
    p_search.add_argument("query", nargs="?", default=None, help="Optional query text.")
    p_search.add_argument("--category", default=None, help="Only this category.")
    p_search.add_argument("--platform", default=None, help="Only this platform.")
    p_search.add_argument("--type", default=None, help="Only this memory type.")
    p_search.add_argument("--date-range", choices=sorted(DATE_RANGES), default=None)
    p_search.add_argument("--limit", type=int, default=None, metavar="N")
    p_search.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # list
    p_list = sub.add_parser("list", help="List stored memories.")
    p_list.add_argument(
        "--limit",
        type=int,
        default=100,
        metavar="N",
        help="Maximum number of memories to show (default: 100).",
    )
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # update
    p_update = sub.add_parser("update", help="Update a memory.")
    p_update.add_argument("id", help="Memory ID to update.")
    p_update.add_argument("--content", default=None, help="Replacement content.")
    p_update.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")

    # delete
    p_delete = sub.add_parser("delete", help="Delete a memory by ID.")
    p_delete.add_argument("id", help="Memory ID to delete.")

    # clear
    p_clear = sub.add_parser("clear", help="Delete every memory.")
    p_clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")

    sub.add_parser("dedupe", help="Remove memories with matching keyword signatures.")
    sub.add_parser("stats", help="Print collection statistics.")
    sub.add_parser("analytics", help="Print a collection breakdown.")

    # export
    p_export = sub.add_parser("export", help="Export the collection.")
    p_export.add_argument("--format", choices=EXPORT_FORMATS, default="json", dest="fmt")
    p_export.add_argument("-o", "--output", default=None, metavar="FILE", help="Write to FILE.")

    # import
    p_import = sub.add_parser("import", help="Import memories from a JSON export.")
    p_import.add_argument("file", help="JSON file to import ('-' for stdin).")
    p_import.add_argument(
        "--replace",
        action="store_true",
        help="Replace the collection instead of merging into it.",
    )

    # count
    sub.add_parser("count", help="Print the number of stored memories.")

    return parser


def _parse_meta(pairs: list[str]) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"metadata must look like KEY=VALUE, got {pair!r}")
        meta[key] = value
    return meta


def _read_text(text: str | None) -> str:
    return text if text is not None else sys.stdin.read()


def _source_meta(args: argparse.Namespace) -> dict[str, Any]:
    platform = getattr(args, "platform", None) or detect_platform(args.location)
    return {"platform": platform} if platform != "unknown" else {}


def _fmt_ts(ts: float | None) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M") if ts else "-"


def _print_hits(hits: list[dict[str, Any]], as_json: bool) -> None:
    if as_json:
        print(json.dumps(hits, indent=2, ensure_ascii=False))
        return
    for i, hit in enumerate(hits, 1):
        score = hit.get("score")
        score_text = f"score={score:.3f}, " if score is not None else ""
        print(f"[{i}] ({score_text}category={hit['category']})")
        print(f"    {hit['content'][:200]}")
        print(f"    id={hit['id']}")
        print()


def main(argv: list[str] | None = None) -> int:
    settings = Settings.from_env()
    parser = _build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging("INFO" if args.verbose else settings.log_level)

    manager = MemoryManager(
        blob_store=FileBlobStore(args.db),
        context=StaticContext(args.location),
        storage_key=args.key,
        max_memories=args.max_memories,
    )

    if args.command == "save":
        text = _read_text(args.text)
        if not text.strip():
            print("Error: no text provided.", file=sys.stderr)
            return 1
        try:
            meta = {**_source_meta(args), **_parse_meta(args.meta)}
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        if args.type:
            meta["type"] = args.type
        record = manager.save(text, meta)
        if record is None:
            print("Skipped: duplicate of an existing memory.")
        else:
            print(f"Saved memory {record.id} [{record.category}]")

    elif args.command == "ingest":
        text = _read_text(args.text)
        records = manager.ingest(text, _source_meta(args))
        if not records:
            print("Nothing worth saving.")
        else:
            print(f"Saved {len(records)} memory record(s): {', '.join(r.id for r in records)}")

    elif args.command == "query":
        hits = manager.query(args.query, limit=args.n)
        if not hits:
            print("No memories found.")
            return 0
        _print_hits(hits, args.as_json)

    elif args.command == "search":
        filters = {
            "category": args.category,
            "platform": args.platform,
            "type": args.type,
            "date_range": args.date_range,
        }
        hits = manager.search(args.query, {k: v for k, v in filters.items() if v}, limit=args.limit)
        if not hits:
            print("No memories found.")
            return 0
        _print_hits(hits, args.as_json)

    elif args.command == "list":
        memories = manager.get_all()[: args.limit]
        if not memories:
            print("No memories stored.")
            return 0
        if args.as_json:
            print(json.dumps([m.to_dict() for m in memories], indent=2, ensure_ascii=False))
        else:
            for m in memories:
                print(f"id={m.id} ts={_fmt_ts(m.timestamp)} category={m.category}")
                print(f"    {m.summary[:120]}")
                print()

    elif args.command == "update":
        try:
            patch = _parse_meta(args.meta)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        if args.content is not None:
            patch["content"] = args.content
        record = manager.update(args.id, patch)
        if record is None:
            print(f"No memory with id {args.id}.", file=sys.stderr)
            return 1
        print(f"Updated memory {record.id} [{record.category}]")

    elif args.command == "delete":
        if not manager.delete(args.id):
            print(f"No memory with id {args.id}.", file=sys.stderr)
            return 1
        print(f"Deleted memory {args.id}.")

    elif args.command == "clear":
        if not args.yes:
            answer = input(f"Delete all {manager.count()} memories? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Aborted.")
                return 1
        manager.clear()
        print("Cleared all memories.")

    elif args.command == "dedupe":
        result = manager.deduplicate()
        print(f"Removed {result['removed']} duplicate(s); {result['remaining']} remaining.")

    elif args.command == "stats":
        stats = manager.stats()
        print(f"total: {stats['total']}")
        print(f"oldest: {_fmt_ts(stats['oldest_timestamp'])}")
        print(f"newest: {_fmt_ts(stats['newest_timestamp'])}")
        for source, n in sorted(stats["sources"].items()):
            print(f"  {source}: {n}")

    elif args.command == "analytics":
        print(json.dumps(manager.analytics(), indent=2))

    elif args.command == "export":
        output = manager.export(args.fmt)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as fh:
                fh.write(output)
            print(f"Exported {manager.count()} memories to {args.output}.")
        else:
            print(output)

    elif args.command == "import":
        if args.file == "-":
            payload = sys.stdin.read()
        else:
            with open(args.file, encoding="utf-8") as fh:
                payload = fh.read()
        result = manager.import_memories(payload, merge=not args.replace)
        if not result["success"]:
            print(f"Import failed: {result['error']}", file=sys.stderr)
            return 1
        print(f"Imported {result['imported']} memories; {result['total']} total.")

    elif args.command == "count":
        print(manager.count())

    return 0


if __name__ == "__main__":
    sys.exit(main())
