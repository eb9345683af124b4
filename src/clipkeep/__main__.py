import argparse
import json
import logging
import sys
from typing import Any

from clipkeep.config import LOG_PATH
from clipkeep.utils import ensure_dirs


def configure_logging(verbose: bool = False) -> None:
    ensure_dirs()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into keyword arguments, decoding JSON values where possible."""
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        try:
            params[key] = json.loads(raw)
        except json.JSONDecodeError:
            params[key] = raw
    return params


def read_payload(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, encoding="utf-8") as fh:
        return fh.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipkeep",
        description="clipkeep - clipboard history store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clipkeep add "hello world"
  clipkeep list --type text
  clipkeep search invoice --type private
  clipkeep cleanup --max-items 200
  clipkeep sync snapshot.json
  clipkeep call add_to_folder folder_id=abc item_id=def
""",
    )
    parser.add_argument("--db", help="Path to the store file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List items, newest first")
    p.add_argument("--type", dest="item_type", help="text, image, file or folder")
    p.add_argument("--favorites", action="store_true", help="Only favorited items")

    p = sub.add_parser("get", help="Show one item")
    p.add_argument("id")

    p = sub.add_parser("add", help="Store a text item")
    p.add_argument("text")

    p = sub.add_parser("delete", help="Delete an item and its backing file")
    p.add_argument("id")

    p = sub.add_parser("favorite", help="Toggle an item's favorite flag")
    p.add_argument("id")

    p = sub.add_parser("search", help="Search content, notes and OCR text")
    p.add_argument("query")
    p.add_argument("--type", dest="item_type", help="Item type, 'private' or a folder id")
    p.add_argument("--start", type=int, help="Start timestamp (ms)")
    p.add_argument("--end", type=int, help="End timestamp (ms)")

    sub.add_parser("folders", help="List folders")

    p = sub.add_parser("cleanup", help="Apply retention policies now")
    p.add_argument("--days", type=int, help="Override retention days")
    p.add_argument("--max-items", type=int, help="Override maximum history items")

    sub.add_parser("mark-private", help="Run all privacy detectors with configured flags")

    p = sub.add_parser("sync", help="Merge a snapshot file ('-' for stdin)")
    p.add_argument("source")
    p.add_argument("--dek", help="Hex data-encryption key for encrypted content and notes")

    p = sub.add_parser("export", help="Print the whole store as a snapshot")
    p.add_argument("--dek", help="Encrypt content and notes with this hex key")

    p = sub.add_parser("call", help="Invoke any command by name")
    p.add_argument("name")
    p.add_argument("params", nargs="*", help="key=value pairs; values are parsed as JSON when possible")

    return parser


def dispatch(args: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    if args.command == "list":
        if args.favorites:
            return "filter_by_favorite", {"is_favorite": True}
        if args.item_type:
            return "filter_by_type", {"item_type": args.item_type}
        return "get_all", {}
    if args.command == "get":
        return "get_item", {"id": args.id}
    if args.command == "add":
        return "insert_text", {"text": args.text}
    if args.command == "delete":
        return "delete_item", {"id": args.id}
    if args.command == "favorite":
        return "toggle_favorite", {"id": args.id}
    if args.command == "search":
        return "search", {"query": args.query, "item_type": args.item_type, "start": args.start, "end": args.end}
    if args.command == "folders":
        return "list_folders", {}
    if args.command == "cleanup":
        return "run_retention", {"retention_days": args.days, "max_history_items": args.max_items}
    if args.command == "mark-private":
        return "auto_mark", {}
    if args.command == "sync":
        if args.dek:
            return "sync_merge_encrypted", {"payload": read_payload(args.source), "dek_hex": args.dek}
        return "sync_merge", {"payload": read_payload(args.source)}
    if args.command == "export":
        return "export_snapshot", {"dek_hex": args.dek}
    return args.name, parse_params(args.params)


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    from clipkeep.app import ClipkeepApp
    from clipkeep.commands import invoke
    from clipkeep.errors import ClipkeepError

    try:
        name, params = dispatch(args)
        app = ClipkeepApp(db_path=args.db)
    except (OSError, ValueError, ClipkeepError) as exc:
        print(json.dumps({"ok": False, "error": str(exc)}))
        return 1

    with app:
        result = invoke(app, name, **params)
    print(result.to_json())
    return 0 if result.ok else 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
