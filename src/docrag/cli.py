"""Command-line entry point: ``docrag <command> [options]``."""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
import time
from collections.abc import Sequence

from docrag.config import configure_logging, get_settings
from docrag.engine import RagEngine
from docrag.errors import DocRagError
from docrag.ingestion.indexer import IndexOptions
from docrag.ingestion.knowledge import sync_knowledge
from docrag.ingestion.models import FileIndexStatus, IndexedFileResult

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_STATUS_LABELS = {
    FileIndexStatus.INDEXED_OK: "INDEXED",
    FileIndexStatus.INDEXED_WITH_ERRORS: "INDEXED*",
    FileIndexStatus.SKIPPED_UNCHANGED: "SKIPPED (unchanged)",
    FileIndexStatus.SKIPPED_EXCLUDED: "SKIPPED (excluded)",
    FileIndexStatus.FAILED: "FAILED",
}


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean (yes/no, true/false, 1/0), got {value!r}")


def _on_off(value: bool | None) -> str:
    return "profile" if value is None else ("yes" if value else "no")


def format_duration(seconds: float) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{int(hours):02d}:{int(minutes):02d}:{secs:05.2f}"


# -- commands ------------------------------------------------------------------


def cmd_index(engine: RagEngine, args: argparse.Namespace) -> int:
    options = IndexOptions(
        force_reindex=args.force_reindex,
        dry_run=args.dry_run,
        test_mode=True if args.test_mode else None,
        offline_fallback=args.offline_fallback,
        path_filters=args.path or [],
        excluded_dirs=args.exclude_dir,
        excluded_name_patterns=args.exclude_name,
    )
    profile = engine.profiles.active()
    root = args.root or engine.settings.knowledge_root
    print(f"Indexing documents in {root}")
    print(f"  profile: {profile.name} ({profile.display_label}) · backend: {profile.backend}")
    print(
        f"  force-reindex: {_on_off(options.force_reindex)}, dry-run: {_on_off(options.dry_run)}, "
        f"test-mode: {_on_off(options.test_mode)}, offline-fallback: {_on_off(options.offline_fallback)}"
    )
    for prefix in options.path_filters:
        print(f"    - {prefix}")

    def on_start(total: int) -> None:
        if total == 0:
            print("No files to process.")

    def on_file_processed(result: IndexedFileResult, current: int, total: int) -> None:
        print(f"{current}/{total} {result.relative_path}", file=sys.stderr)

    started = time.monotonic()
    summary = engine.index(root, options, on_start=on_start, on_file_processed=on_file_processed)
    elapsed = time.monotonic() - started

    print(
        f"Found: {summary.total_files_found} file(s) | Indexed: {summary.total_indexed} | "
        f"Skipped: {summary.total_skipped} | Failed: {summary.total_failed} | Time: {elapsed:.2f}s"
    )
    if args.verbose:
        print(f"Total duration: {format_duration(elapsed)}")
        for result in summary.files:
            extra = f" - {result.error_message}" if result.error_message else ""
            print(f"{_STATUS_LABELS[result.status]} - {result.relative_path} ({result.chunks_count} chunks){extra}")
    return 1 if summary.has_failures else 0


def cmd_list_docs(engine: RagEngine, args: argparse.Namespace) -> int:
    documents = engine.list_documents(args.path, args.limit)
    if not documents:
        print("No indexed documents.")
        return 0
    width = max(len(d.path) for d in documents)
    for doc in documents:
        print(f"{doc.path:<{width}}  {doc.chunks_count:>5} chunks  {doc.size:>10} B  {doc.indexed_at:%Y-%m-%d %H:%M}")
    return 0


def cmd_unindex(engine: RagEngine, args: argparse.Namespace) -> int:
    try:
        removed = engine.unindex(args.pattern)
    except re.error as exc:
        print(f"error: invalid pattern {args.pattern!r}: {exc}", file=sys.stderr)
        return 2
    if not removed:
        print(f"No indexed file matches {args.pattern!r}.")
        return 0
    for path in removed:
        print(f"removed {path}")
    print(f"{len(removed)} file(s) removed from the index.")
    return 0


def cmd_ask(engine: RagEngine, args: argparse.Namespace) -> int:
    if args.stream:
        stream = engine.orchestrator.ask_stream(args.question)
        for fragment in stream:
            print(fragment, end="", flush=True)
        print()
        sources = stream.sources
    else:
        answer = engine.orchestrator.ask(args.question)
        print(answer.answer)
        sources = answer.sources
    if sources:
        print("\nSources:")
        for source in sources:
            print(f"  {source.short_ref()} similarity {source.similarity_formatted}")
    return 0


def cmd_profiles(engine: RagEngine, args: argparse.Namespace) -> int:
    if args.profiles_command == "use":
        engine.profiles.switch(args.name)
        alignment = engine.schema_alignment()
        print(f"Active RAG profile: {args.name}")
        if not alignment["aligned"]:
            print(
                f"warning: stored vectors have dimension(s) {alignment['stored_dimensions']}, "
                f"the profile expects {alignment['expected_dimension']}; run `docrag index --force-reindex`.",
                file=sys.stderr,
            )
        return 0

    active = engine.profiles.active_name
    for profile in engine.profiles.list_profiles():
        marker = "*" if profile["name"] == active else " "
        print(f"{marker} {profile['name']:<20} {profile['backend']:<8} {profile['label']}")
    return 0


def cmd_status(engine: RagEngine, args: argparse.Namespace) -> int:
    print(json.dumps({**engine.status(), "schema": engine.schema_alignment()}, indent=2))
    return 0


def cmd_serve(engine: RagEngine, args: argparse.Namespace) -> int:
    import uvicorn

    from docrag.serving.app import create_app

    uvicorn.run(create_app(engine), host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def cmd_reset_index(engine: RagEngine, args: argparse.Namespace) -> int:
    if not args.force:
        print("Refusing to drop the index without --force.", file=sys.stderr)
        return 2
    removed = engine.reset_index()
    print(f"Index reset: {removed} file(s) removed.")
    return 0


# -- parser --------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docrag", description="Index documents and answer questions about them.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: settings.log_level)")
    parser.add_argument("--rag-profile", default=None, help="Use this RAG profile for this run only")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("index", help="Index (or re-index) the knowledge root")
    p.add_argument("root", nargs="?", help="Directory to index (default: settings.knowledge_root)")
    p.add_argument("--force-reindex", action="store_true", help="Re-index even when the content hash is unchanged")
    p.add_argument("--dry-run", action="store_true", help="Chunk only: no embedding calls, no writes")
    p.add_argument("--test-mode", action="store_true", help="Store placeholder vectors, never call the model")
    p.add_argument(
        "--offline-fallback",
        type=parse_bool,
        default=None,
        metavar="BOOL",
        help="Store placeholder vectors when embedding fails (default: profile)",
    )
    p.add_argument("--path", action="append", help="Only index this relative path (repeatable)")
    p.add_argument("--exclude-dir", action="append", default=None, help="Directory name or prefix to skip (repeatable)")
    p.add_argument("--exclude-name", action="append", default=None, help="File name pattern to skip (repeatable)")
    p.add_argument("-v", "--verbose", action="store_true", help="Print one line per file")
    p.set_defaults(func=cmd_index)

    p = sub.add_parser("list-docs", help="List indexed documents")
    p.add_argument("--path", default=None, help="Only paths containing this text")
    p.add_argument("--limit", type=int, default=50)
    p.set_defaults(func=cmd_list_docs)

    p = sub.add_parser("unindex", help="Remove indexed files whose path matches a regular expression")
    p.add_argument("pattern")
    p.set_defaults(func=cmd_unindex)

    p = sub.add_parser("ask", help="Ask a question")
    p.add_argument("question")
    p.add_argument("--stream", action="store_true", help="Print the answer as it is generated")
    p.set_defaults(func=cmd_ask)

    p = sub.add_parser("profiles", help="List or switch RAG profiles")
    profiles_sub = p.add_subparsers(dest="profiles_command")
    profiles_sub.add_parser("list", help="List configured profiles")
    use = profiles_sub.add_parser("use", help="Activate a profile and persist the choice")
    use.add_argument("name")
    p.set_defaults(func=cmd_profiles, profiles_command="list")

    p = sub.add_parser("status", help="Show the engine status")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("sync-knowledge", help="Copy documentation sources into the knowledge root")
    p.add_argument("--source", action="append", required=True, help="File or directory to copy (repeatable)")
    p.add_argument("--target", default=None, help="Destination (default: settings.knowledge_root)")

    p = sub.add_parser("reset-index", help="Drop every indexed file and chunk")
    p.add_argument("--force", action="store_true")
    p.set_defaults(func=cmd_reset_index)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    args.log_level = args.log_level or settings.log_level
    configure_logging(args.log_level)

    if args.command == "sync-knowledge":
        target = args.target or settings.knowledge_root
        try:
            report = sync_knowledge(args.source, target)
        except OSError as exc:
            print(f"error: copy failed: {exc}", file=sys.stderr)
            return 1
        for missing in report.missing:
            print(f"warning: {missing} not found, skipped", file=sys.stderr)
        print(f"Synchronised {len(report.copied)} source(s) into {target}.")
        return 0

    try:
        engine = RagEngine(settings, profile=args.rag_profile)
        try:
            return args.func(engine, args)
        finally:
            engine.close()
    except (DocRagError, ValueError, OSError) as exc:
        # invalid input, missing paths and configuration problems: no traceback
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
