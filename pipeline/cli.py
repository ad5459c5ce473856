#!/usr/bin/env python3
"""
LocalBOT command line interface.

Examples:
  localbot serve --port 8000
  localbot ingest notes.txt handbook.pdf
  localbot ask "What does the handbook say about holidays?"
  localbot ask                      (interactive session)
  localbot search "holidays" --limit 5
  localbot documents
  localbot delete <document-id>
"""

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv

from localbot.exceptions import RagError, error_kind
from localbot.logging_config import get_logger, setup_logging

from .config import PipelineConfig
from .extraction import extract_text
from .service import RagService

logger = get_logger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _write_fragment(fragment: str) -> None:
    sys.stdout.write(fragment)
    sys.stdout.flush()


async def _ingest(service: RagService, args: argparse.Namespace) -> int:
    failures = 0
    for path in args.files:
        try:
            text = extract_text(str(path))
            count = await service.ingest_document(uuid.uuid4().hex, path.name, text)
            print(f"{path.name}: {count} chunks indexed")
        except RagError as e:
            failures += 1
            print(f"{path.name}: failed ({error_kind(e)}): {e}", file=sys.stderr)
    return 1 if failures else 0


async def _ask(service: RagService, args: argparse.Namespace) -> int:
    if args.question:
        result = await service.answer_question(args.question, on_token=_write_fragment)
        print()
        _print_sources(result.sources)
        return 0

    print("LocalBOT (local retrieval-augmented answers)")
    print("Type a question, or 'exit' to quit.")
    session_id = uuid.uuid4().hex
    while True:
        try:
            question = (await asyncio.to_thread(input, "\n> ")).strip()
        except EOFError:
            break
        if not question:
            continue
        if question.lower() in {"exit", "quit"}:
            break
        try:
            result = await service.answer_question(
                question, session_id=session_id, on_token=_write_fragment
            )
        except RagError as e:
            print(f"Error ({error_kind(e)}): {e}", file=sys.stderr)
            continue
        print()
        _print_sources(result.sources)
    return 0


def _print_sources(sources) -> None:
    if not sources:
        return
    print("\nSources:")
    for n, source in enumerate(sources, start=1):
        print(f"  [{n}] {source.document_name} (chunk {source.chunk_index + 1}, score {source.score:.3f})")


async def _search(service: RagService, args: argparse.Namespace) -> int:
    hits = await service.search(args.query, args.limit)
    _print_json([hit.to_dict() for hit in hits])
    return 0


async def _documents(service: RagService, args: argparse.Namespace) -> int:
    _print_json([record.model_dump(mode="json") for record in service.list_documents()])
    return 0


async def _delete(service: RagService, args: argparse.Namespace) -> int:
    removed = await service.delete_document_index(args.document_id)
    print(f"Removed {removed} chunks of {args.document_id}")
    return 0


COMMANDS = {
    "ingest": _ingest,
    "ask": _ask,
    "search": _search,
    "documents": _documents,
    "delete": _delete,
}


async def _run(config: PipelineConfig, args: argparse.Namespace) -> int:
    async with RagService(config) as service:
        return await COMMANDS[args.command](service, args)


def _serve(config: PipelineConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from .app import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port, log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="localbot",
        description="Ask questions about your documents with local models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--data-dir", help="Data directory (default: $LOCALBOT_DATA_DIR or data)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    ingest = sub.add_parser("ingest", help="Index one or more files")
    ingest.add_argument("files", nargs="+", type=Path)

    ask = sub.add_parser("ask", help="Ask a question (interactive when omitted)")
    ask.add_argument("question", nargs="?")

    search = sub.add_parser("search", help="Semantic search without generation")
    search.add_argument("query")
    search.add_argument("-n", "--limit", type=int, default=10, help="Max results (1-50, default: 10)")

    sub.add_parser("documents", help="List documents and their status")

    delete = sub.add_parser("delete", help="Remove a document from the index")
    delete.add_argument("document_id")

    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = PipelineConfig.from_env()
    if args.data_dir:
        config.data_dir = args.data_dir

    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "WARNING"
    else:
        log_level = config.log_level
    setup_logging(level=log_level, log_file=Path(config.log_file) if config.log_file else None)

    try:
        if args.command == "serve":
            return _serve(config, args)
        return asyncio.run(_run(config, args))
    except RagError as e:
        logger.error("%s failed (%s): %s", args.command, error_kind(e), e)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
