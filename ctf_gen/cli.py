from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import AppConfig, init_project, load_app_config
from .errors import CTFError, MethodNotFoundError
from .function_finder import extract_functions_from_file, filter_functions_by_name
from .llm_client import OpenAILLMClient, attach_llm_log_file
from .llm_client import logger as llm_logger
from .models import FunctionAnalysis
from .orchestrator import PipelineOrchestrator


def setup_logging(verbose: bool = False) -> None:
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctf",
        description="A CLI tool for generating contract testing code",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Initialize the ctf configuration for the project")

    functions_parser = subparsers.add_parser(
        "functions",
        help="List the functions of a contract",
    )
    functions_parser.add_argument(
        "-f", "--file", required=True, help="Contract file, relative to the contracts directory."
    )
    functions_parser.add_argument("-m", "--method", help="Only show this method.")

    gent_parser = subparsers.add_parser(
        "gent",
        help="Generate test cases for a contract",
        description="Generate test cases for a contract.\n\nexample:\n\n  ctf gent -f MyContract.sol -m myMethod",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    gent_parser.add_argument(
        "-f", "--file", required=True, help="The contract file to generate test cases for."
    )
    gent_parser.add_argument("-m", "--method", help="The contract method to generate test cases for.")
    gent_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Accept every suggested test case list without asking.",
    )
    gent_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore cached analyses (fresh results are still written to the cache).",
    )
    gent_parser.add_argument("-v", "--verbose", action="store_true", help="Show progress logs.")
    return parser


def ask_confirmation(analysis: FunctionAnalysis) -> bool:
    try:
        answer = input(f"Generate tests for {analysis.method_name} with these cases? [Y/n] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("", "y", "yes")


def cmd_init(root: Path) -> int:
    for path in init_project(root):
        print(f"Created {path.relative_to(root.resolve())}")
    print("Initialization complete!")
    return 0


def cmd_functions(root: Path, args: argparse.Namespace) -> int:
    config = load_app_config(root)
    path = config.paths.contracts_dir / args.file
    if not path.is_file():
        raise CTFError(f"Contract file {args.file} not found in contracts directory")
    functions = filter_functions_by_name(extract_functions_from_file(path), args.method)
    if not functions and args.method:
        raise MethodNotFoundError(args.method, args.file)
    if not functions:
        raise CTFError(f"No functions found in {args.file}")

    print(f"Found {len(functions)} functions in {args.file}:")
    for fn in functions:
        print(f"- {fn.signature()}:\n{fn.source_code}")
    return 0


async def run_gent(config: AppConfig, args: argparse.Namespace) -> int:
    llm_client = OpenAILLMClient(config.llm)
    orchestrator = PipelineOrchestrator(
        config=config,
        llm_client=llm_client,
        confirm=None if args.yes else ask_confirmation,
    )
    await orchestrator.run(args.file, args.method)
    return 0


def cmd_gent(root: Path, args: argparse.Namespace) -> int:
    config = load_app_config(root)
    if args.yes:
        config.project.auto_confirm = True
    config.use_cache = not args.no_cache
    handler = attach_llm_log_file(config.paths.ctf_dir / "llm_log.log")
    try:
        return asyncio.run(run_gent(config, args))
    finally:
        llm_logger.removeHandler(handler)
        handler.close()


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(getattr(args, "verbose", False))
    root = Path.cwd()
    try:
        if args.command == "init":
            return cmd_init(root)
        if args.command == "functions":
            return cmd_functions(root, args)
        return cmd_gent(root, args)
    except CTFError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
