#!/usr/bin/env python3
"""
Command line interface for Mizan Memory Engine
Copyright 2025 Jurden Bruce

Usage:
    mizan-memory add "content" --category fact --importance 0.8 --tags tag1,tag2
    mizan-memory search "query" --limit 5
    mizan-memory list --category preference --since 7d
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import load_config, default_port, resolve_path
from .engine import MemoryEngine
from .errors import MemoryEngineError, ValidationError
from .models import ListOptions, MemoryCategory, MemoryInput, SearchOptions
from .utils import now_ms, parse_duration_ms, parse_tags, setup_logging

logger = logging.getLogger("mizan-memory.cli")


class MemoryCLI:
    """CLI interface for memory operations"""

    def __init__(self, engine: MemoryEngine):
        self.engine = engine

    async def add(self, content: str, category: MemoryCategory, importance: float = 0.5,
                  tags: List[str] = None) -> Dict[str, Any]:
        memory = await self.engine.add_memory(MemoryInput(
            content=content,
            category=category,
            tags=tags or [],
            importance=importance,
        ))
        return memory.to_api_dict()

    async def search(self, query: str, limit: int = 10, category: Optional[MemoryCategory] = None,
                     tags: List[str] = None) -> Dict[str, Any]:
        results = await self.engine.search(query, SearchOptions(
            limit=limit,
            category=category,
            tags=tags or None,
        ))
        return {
            "query": query,
            "count": len(results),
            "results": [r.to_api_dict() for r in results],
        }

    def list(self, category: Optional[MemoryCategory] = None, tags: List[str] = None,
             since: Optional[str] = None, limit: Optional[int] = None,
             offset: Optional[int] = None) -> List[Dict[str, Any]]:
        duration = parse_duration_ms(since)
        memories = self.engine.list(ListOptions(
            category=category,
            tags=tags or None,
            since=now_ms() - duration if duration else None,
            limit=limit,
            offset=offset,
        ))
        return [m.to_api_dict() for m in memories]

    def get(self, memory_id: str) -> Optional[Dict[str, Any]]:
        memory = self.engine.get(memory_id)
        return memory.to_api_dict() if memory else None

    def delete(self, memory_id: str) -> Dict[str, Any]:
        return {"id": memory_id, "deleted": self.engine.delete(memory_id)}

    def export(self, fmt: str = "json") -> List[Dict[str, Any]]:
        if fmt.lower() != "json":
            raise ValidationError("Only json export is supported.", kind="unsupported_format")
        return [m.to_dict() for m in self.engine.list()]

    async def summarize(self) -> Dict[str, int]:
        return (await self.engine.summarize()).to_dict()

    def decay(self) -> Dict[str, int]:
        return self.engine.decay().to_dict()

    def flush(self) -> Dict[str, Any]:
        self.engine.flush_wal()
        return {"flushed": True, "walPath": str(self.engine.wal.path)}

    def health(self) -> Dict[str, Any]:
        return self.engine.health().to_dict()

    def shutdown(self):
        self.engine.close()


def parse_category(value: str) -> MemoryCategory:
    """argparse type for --category"""
    try:
        return MemoryCategory.parse(value)
    except ValidationError as e:
        raise argparse.ArgumentTypeError(
            f"{e} (choose from {', '.join(MemoryCategory.values())})"
        ) from None


def format_compact(command: str, result: Any) -> str:
    """Compact line-oriented output"""
    if command == "add":
        return f"STORED id={result['id']} category={result['category']} importance={result['importance']}"
    if command == "search":
        lines = [f"SEARCH count={result['count']} query={result['query']!r}"]
        for hit in result["results"]:
            mem = hit["memory"]
            lines.append(f"MEMORY id={mem['id']} score={hit['score']:.4f} category={mem['category']} "
                         f"importance={mem['importance']:.2f} content={mem['content'][:80]!r}")
        return "\n".join(lines)
    if command == "list":
        lines = [f"LIST count={len(result)}"]
        for mem in result:
            lines.append(f"MEMORY id={mem['id']} category={mem['category']} importance={mem['importance']:.2f} "
                         f"created={mem['created_at']} content={mem['content'][:80]!r}")
        return "\n".join(lines)
    if command == "get":
        if result is None:
            return "NOT_FOUND"
        return (f"MEMORY id={result['id']} category={result['category']} importance={result['importance']:.2f} "
                f"tags={','.join(result['tags'])}\nCONTENT {result['content']}")
    if command == "delete":
        return f"DELETED id={result['id']}" if result["deleted"] else f"NOT_FOUND id={result['id']}"
    if command == "summarize":
        return f"SUMMARIZED summaries={result['summaries']} deleted={result['deleted']}"
    if command == "decay":
        return f"DECAYED updated={result['updated']} pruned={result['pruned']}"
    if command == "health":
        cache = result["embeddingCache"]
        categories = ",".join(f"{k}:{v}" for k, v in sorted(result["categories"].items()))
        return (f"HEALTH ok={result['ok']} memories={result['memoryCount']} db={result['dbPath']} "
                f"wal={result['walPath']} categories={categories or '-'} "
                f"cache_hits={cache['hits']} cache_misses={cache['misses']}")
    return json.dumps(result, default=str)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mizan-memory",
        description="Mizan Memory Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Store a memory:
    mizan-memory add "User prefers dark mode" --category preference --importance 0.8 --tags "ui,settings"

  Search memories:
    mizan-memory search "dark mode" --limit 5

  List recent lessons:
    mizan-memory list --category lesson --since 7d

  Run maintenance:
    mizan-memory decay
    mizan-memory summarize
        """
    )

    parser.add_argument("--db-path", help="SQLite database path (overrides MEMORY_DB_PATH)")
    parser.add_argument("--wal-path", help="Write-ahead log path (overrides MEMORY_WAL_PATH)")
    parser.add_argument("--log-level", help="Logging level (overrides MEMORY_LOG_LEVEL)")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--pretty", action="store_true", help="Pretty print JSON output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    add_parser = subparsers.add_parser("add", help="Store a new memory")
    add_parser.add_argument("content", help="Memory content")
    add_parser.add_argument("--category", required=True, type=parse_category, help="Memory category")
    add_parser.add_argument("--tags", help="Comma-separated tags")
    add_parser.add_argument("--importance", type=float, default=0.5, help="Importance 0.0-1.0 (default: 0.5)")

    search_parser = subparsers.add_parser("search", help="Search memories")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--limit", type=int, default=10, help="Max results (default: 10)")
    search_parser.add_argument("--category", type=parse_category, help="Filter by category")
    search_parser.add_argument("--tags", help="Filter by comma-separated tags")

    list_parser = subparsers.add_parser("list", help="List memories, newest first")
    list_parser.add_argument("--category", type=parse_category, help="Filter by category")
    list_parser.add_argument("--tags", help="Filter by comma-separated tags")
    list_parser.add_argument("--since", help="Relative duration like 7d, 12h")
    list_parser.add_argument("--limit", type=int, help="Max results")
    list_parser.add_argument("--offset", type=int, help="Skip this many results")

    get_parser = subparsers.add_parser("get", help="Get a specific memory by ID")
    get_parser.add_argument("memory_id", help="Memory ID")

    delete_parser = subparsers.add_parser("delete", help="Delete a memory by ID")
    delete_parser.add_argument("memory_id", help="Memory ID")

    export_parser = subparsers.add_parser("export", help="Export all memories")
    export_parser.add_argument("--format", default="json", help="Export format (json)")

    subparsers.add_parser("summarize", help="Compact low-importance memories into summaries")
    subparsers.add_parser("decay", help="Apply importance decay and prune stale memories")
    subparsers.add_parser("flush", help="Clear the write-ahead log")
    subparsers.add_parser("health", help="Show engine health")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides MEMORY_PORT, default 3200)")

    return parser


async def run_command(cli: MemoryCLI, args: argparse.Namespace) -> Any:
    if args.command == "add":
        return await cli.add(
            content=args.content,
            category=args.category,
            importance=args.importance,
            tags=parse_tags(args.tags),
        )
    if args.command == "search":
        return await cli.search(
            query=args.query,
            limit=args.limit,
            category=args.category,
            tags=parse_tags(args.tags),
        )
    if args.command == "list":
        return cli.list(
            category=args.category,
            tags=parse_tags(args.tags),
            since=args.since,
            limit=args.limit,
            offset=args.offset,
        )
    if args.command == "get":
        return cli.get(args.memory_id)
    if args.command == "delete":
        return cli.delete(args.memory_id)
    if args.command == "export":
        return cli.export(args.format)
    if args.command == "summarize":
        return await cli.summarize()
    if args.command == "decay":
        return cli.decay()
    if args.command == "flush":
        return cli.flush()
    if args.command == "health":
        return cli.health()
    raise ValueError(f"Unknown command: {args.command}")


def emit(args: argparse.Namespace, result: Any):
    if args.command == "export" or args.json or args.pretty:
        print(json.dumps(result, indent=2 if args.pretty or args.command == "export" else None, default=str))
    else:
        print(format_compact(args.command, result))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(
            db_path=resolve_path(args.db_path),
            wal_path=resolve_path(args.wal_path),
            log_level=args.log_level,
        )
    except MemoryEngineError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    setup_logging(config.log_level)

    if args.command == "serve":
        from .web_server import serve
        serve(config, host=args.host, port=args.port or default_port())
        return 0

    try:
        cli = MemoryCLI(MemoryEngine(config))
    except MemoryEngineError as e:
        logger.error(f"Engine startup failed: {e}")
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    try:
        result = asyncio.run(run_command(cli, args))
    except MemoryEngineError as e:
        print(f"[ERROR] {e.kind}: {e}", file=sys.stderr)
        return 1
    finally:
        cli.shutdown()

    emit(args, result)
    if args.command in ("get", "delete") and (result is None or result.get("deleted") is False):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
