"""Command-line interface for the code companion.

Examples:
  # Heuristic scan of a file, a folder or a zip archive (no LLM needed)
  python main.py scan src/app.js

  # Full LLM analysis, printed as JSON
  python main.py --json analyze src/app.js

  # Stream issues as they arrive, framed as Server-Sent Events
  python main.py stream src/app.js --sse

  # Ask a question about some code
  python main.py ask "Is this query safe?" --file src/db.py

  # Stream the answer as it is generated
  python main.py ask "Explain this function" --file src/db.py --stream --sse

  # Show the context around line 42
  python main.py snippet src/app.js 42
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from code_companion.analysis import extract_snippet, line_count, scan_sources
from code_companion.config import CompanionConfig
from code_companion.llm.provider import LLMProviderError
from code_companion.llm.provider_registry import available_providers, create_provider_chain
from code_companion.llm.service import LLMService
from code_companion.models import EventType, Issue, StreamEvent
from code_companion.prompt import render_system_prompt
from code_companion.review import CodeAnalyzer
from code_companion.sources import SourceFile, load_path
from code_companion.streaming import encode_stream, encode_text_stream

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_PROVIDER_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code-companion",
        description="Scan and review source code with local heuristics and LLM providers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  CODE_COMPANION_SNIPPET_CONTEXT    Lines shown either side of an issue (default: 3)
  CODE_COMPANION_PATCH_CONTEXT      Lines replaced either side of a fix (default: 3)
  CODE_COMPANION_DEFAULT_SEVERITY   Severity of heuristic findings (default: warning)
  LLM_PRIMARY                       Primary LLM provider (default: gemini)
  LLM_FALLBACK                      Fallback providers (comma-separated)
  GEMINI_API_KEY / MISTRAL_API_KEY  Provider credentials
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Path to a .env file to load before reading configuration",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of text",
    )
    parser.add_argument(
        "--provider",
        choices=available_providers(),
        default=None,
        help="Primary LLM provider (overrides LLM_PRIMARY)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Run the heuristic scanner")
    scan.add_argument("paths", nargs="+", type=Path, help="Files, folders or .zip archives")
    scan.add_argument("--language", default=None, help="Override language detection")

    analyze = subparsers.add_parser("analyze", help="Run a full LLM analysis")
    analyze.add_argument("file", type=Path)
    analyze.add_argument("--language", default=None)
    analyze.add_argument("--context", default="", help="Extra context passed to the model")

    stream = subparsers.add_parser("stream", help="Stream an LLM analysis issue by issue")
    stream.add_argument("file", type=Path)
    stream.add_argument("--language", default=None)
    stream.add_argument("--context", default="", help="Extra context passed to the model")
    stream.add_argument("--sse", action="store_true", help="Emit Server-Sent-Events records")

    ask = subparsers.add_parser("ask", help="Ask a question, optionally about a file")
    ask.add_argument("question")
    ask.add_argument("--file", type=Path, default=None)
    ask.add_argument("--language", default="")
    ask.add_argument("--stream", action="store_true", help="Print the answer as it is generated")
    ask.add_argument("--sse", action="store_true", help="With --stream, emit Server-Sent-Events records")

    snippet = subparsers.add_parser("snippet", help="Show the lines around a line number")
    snippet.add_argument("file", type=Path)
    snippet.add_argument("line", type=int)
    snippet.add_argument(
        "--context-lines",
        type=int,
        default=None,
        help="Lines either side (default: CODE_COMPANION_SNIPPET_CONTEXT)",
    )

    return parser


def build_service(config: CompanionConfig, args: argparse.Namespace) -> LLMService:
    providers = create_provider_chain(
        system_prompt=render_system_prompt(),
        dotenv_path=args.dotenv,
        primary=args.provider or config.llm_primary,
        fallbacks=config.llm_fallback,
        skip_unconfigured=True,
    )
    logger.info("Using LLM providers: %s", ", ".join(p.name for p in providers))
    return LLMService(providers)


def _read_single(path: Path) -> SourceFile:
    sources = load_path(path)
    if len(sources) != 1 or path.is_dir():
        raise ValueError(f"{path} must be a single UTF-8 text file")
    return sources[0]


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _format_issue(issue: Issue) -> str:
    category = issue.category.value if issue.category else "uncategorised"
    return f"  line {issue.line_number} [{issue.severity.value}/{category}] {issue.description}"


def _run_scan(args: argparse.Namespace, config: CompanionConfig) -> int:
    sources: list[SourceFile] = []
    for path in args.paths:
        sources.extend(load_path(path))
    if not sources:
        print("No text files found.", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if args.language:
        analyzer = CodeAnalyzer(config=config)
        results = {
            source.path: analyzer.scan(source.content, args.language) for source in sources
        }
    else:
        results = scan_sources(sources, default_severity=config.default_severity)

    if args.json:
        _print_json(
            {path: [issue.to_wire() for issue in issues] for path, issues in results.items()}
        )
        return EXIT_OK

    total = 0
    for path, issues in results.items():
        if not issues:
            continue
        print(path)
        for issue in issues:
            print(_format_issue(issue))
        total += len(issues)
    print(f"\n{total} issue(s) in {len(results)} file(s).")
    return EXIT_OK


def _run_analyze(args: argparse.Namespace, analyzer: CodeAnalyzer) -> int:
    source = _read_single(args.file)
    result = analyzer.analyze(
        source.content,
        language=args.language,
        filename=source.name,
        additional_context=args.context,
    )
    if args.json:
        _print_json(result.model_dump(mode="json", by_alias=True))
        return EXIT_OK

    for issue in result.issues:
        print(_format_issue(issue))
        if issue.suggested_code:
            print(f"    suggested: {issue.suggested_code}")
    if result.summary:
        print(f"\n{result.summary}")
    return EXIT_OK


async def _stream_events(args: argparse.Namespace, analyzer: CodeAnalyzer, source: SourceFile) -> None:
    events = analyzer.stream_analysis(
        source.content,
        language=args.language,
        filename=source.name,
        additional_context=args.context,
    )
    if args.sse:
        async for record in encode_stream(events):
            sys.stdout.write(record)
            sys.stdout.flush()
        return

    async for event in events:
        _print_event(event, as_json=args.json)


def _print_event(event: StreamEvent, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(event.to_wire(), ensure_ascii=False), flush=True)
    elif isinstance(event.content, Issue):
        print(_format_issue(event.content), flush=True)
    elif event.type is EventType.SUMMARY:
        print(f"\n{event.content}", flush=True)
    else:
        print(f"\n[incomplete output]\n{event.content}", flush=True)


def _run_stream(args: argparse.Namespace, analyzer: CodeAnalyzer) -> int:
    source = _read_single(args.file)
    asyncio.run(_stream_events(args, analyzer, source))
    return EXIT_OK


async def _stream_answer(
    args: argparse.Namespace, analyzer: CodeAnalyzer, code_context: str, language: str
) -> None:
    fragments = analyzer.stream_answer(args.question, code_context=code_context, language=language)
    if args.sse:
        async for record in encode_text_stream(fragments):
            sys.stdout.write(record)
            sys.stdout.flush()
        return

    async for fragment in fragments:
        sys.stdout.write(fragment)
        sys.stdout.flush()
    sys.stdout.write("\n")


def _run_ask(args: argparse.Namespace, analyzer: CodeAnalyzer) -> int:
    code_context = ""
    language = args.language
    if args.file is not None:
        source = _read_single(args.file)
        code_context = source.content
        language = language or source.language
    if args.stream:
        asyncio.run(_stream_answer(args, analyzer, code_context, language))
        return EXIT_OK
    answer = analyzer.ask_question(args.question, code_context=code_context, language=language)
    if args.json:
        _print_json({"answer": answer})
    else:
        print(answer)
    return EXIT_OK


def _run_snippet(args: argparse.Namespace, config: CompanionConfig) -> int:
    source = _read_single(args.file)
    context_lines = (
        config.snippet_context_lines if args.context_lines is None else args.context_lines
    )
    text = extract_snippet(source.content, args.line, context_lines)
    if not 1 <= args.line <= line_count(source.content):
        print(f"Line {args.line} is outside {source.path}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    if args.json:
        _print_json({"path": source.path, "lineNumber": args.line, "snippet": text})
    else:
        print(text)
    return EXIT_OK


def run_cli(args: argparse.Namespace) -> int:
    config = CompanionConfig.from_env(args.dotenv)

    try:
        if args.command == "scan":
            return _run_scan(args, config)
        if args.command == "snippet":
            return _run_snippet(args, config)

        analyzer = CodeAnalyzer(build_service(config, args), config)
        if args.command == "analyze":
            return _run_analyze(args, analyzer)
        if args.command == "stream":
            return _run_stream(args, analyzer)
        if args.command == "ask":
            return _run_ask(args, analyzer)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except LLMProviderError as exc:
        logger.error("LLM request failed: %s", exc)
        print(f"LLM error: {exc}", file=sys.stderr)
        return EXIT_PROVIDER_ERROR

    raise AssertionError(f"Unhandled command {args.command!r}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run_cli(args)


if __name__ == "__main__":
    raise SystemExit(main())
