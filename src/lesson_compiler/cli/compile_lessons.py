"""CLI for compiling lesson Markdown files to JSON.

Usage:
    compile-lessons                                  # every .md under INPUT_DIR
    compile-lessons lezioni/moto.md --strict         # selected files
    python -m lesson_compiler.cli.compile_lessons \
        --input-dir examples/md --output-dir output --verbose

Each ``<input_dir>/<path>.md`` is written to ``<output_dir>/<path>.json``.
Exits with status 1 if any file failed to compile.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from lesson_compiler import constants
from lesson_compiler.compiler import compile_with_report
from lesson_compiler.utils.file_io import list_files, output_path_for, read_markdown, write_json
from lesson_compiler.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

console = Console()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Compile lesson Markdown files into lesson JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compile every lesson under examples/md into output/
  compile-lessons --input-dir examples/md --output-dir output

  # Compile one file, treating warnings as errors
  compile-lessons examples/md/fisica/moto.md --strict
        """,
    )
    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        help="Markdown files to compile (default: every .md under --input-dir)",
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        default=Path(constants.INPUT_DIR),
        help=f"Directory searched for lessons (default: {constants.INPUT_DIR})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(constants.OUTPUT_DIR),
        help=f"Directory for compiled JSON (default: {constants.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=constants.STRICT,
        help="Report missing metadata as errors and promote warnings to errors",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print the diagnostic report of every file, including clean ones",
    )
    parser.add_argument(
        "--log-level",
        default=constants.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level",
    )
    parser.add_argument(
        "--log-format",
        default=constants.LOG_FORMAT,
        choices=["text", "json"],
        help="Log output format",
    )
    return parser.parse_args(argv)


def compile_file(
    input_file: Path,
    output_file: Path,
    strict: bool = False,
    verbose: bool = False,
) -> bool:
    """Compile one lesson and write its JSON.

    Args:
        input_file: Lesson Markdown file
        output_file: Destination JSON file
        strict: Strict compilation mode
        verbose: Print the report even when there is nothing to report

    Returns:
        True if the lesson compiled without errors and was written
    """
    start_time = time.perf_counter()
    try:
        source = read_markdown(input_file)
        result, report = compile_with_report(source, strict=strict, source_path=str(input_file))
    except Exception as e:
        logger.error(f"Unexpected error compiling {input_file}: {e}", exc_info=True)
        console.print(f"[red]✗ {escape(str(input_file))}[/red]")
        console.print(f"[red]  Error: {escape(str(e))}[/red]")
        return False

    if verbose or result.errors or result.warnings:
        console.print(report, markup=False, highlight=False, emoji=False)

    if not result.success or result.lesson is None:
        console.print(f"[red]✗ {escape(str(input_file))}[/red]")
        return False

    write_json(result.lesson_dict(), output_file)

    duration_ms = (time.perf_counter() - start_time) * 1000
    console.print(
        f"[green]✓ {escape(str(input_file))}[/green]"
        f"[dim] → {escape(str(output_file))} ({duration_ms:.0f}ms)[/dim]"
    )
    if result.warnings:
        console.print(f"[yellow]  {len(result.warnings)} warning(s)[/yellow]")
    return True


def find_inputs(args: argparse.Namespace) -> List[Path]:
    if args.files:
        return list(args.files)
    return list_files(args.input_dir, "*.md", recursive=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    configure_logging(
        level=args.log_level,
        log_file=constants.LOG_FILE,
        json_format=args.log_format == "json",
        console_output=True,
    )

    console.print("\n[bold blue]Lesson Markdown Compiler[/bold blue]\n")

    files = find_inputs(args)
    if not files:
        console.print(f"[yellow]No .md files found in {escape(str(args.input_dir))}[/yellow]")
        return 0

    console.print(f"[dim]Found {len(files)} file(s) to compile[/dim]\n")
    logger.info(
        f"Compiling {len(files)} file(s)",
        extra={"input_dir": str(args.input_dir), "output_dir": str(args.output_dir), "strict": args.strict},
    )

    succeeded = failed = 0
    for input_file in files:
        output_file = output_path_for(input_file, args.input_dir, args.output_dir)
        if compile_file(input_file, output_file, strict=args.strict, verbose=args.verbose):
            succeeded += 1
        else:
            failed += 1

    console.print()
    if failed:
        console.print(f"[red]{succeeded} compiled, {failed} failed[/red]")
    else:
        console.print(f"[green]{succeeded} compiled, 0 failed[/green]")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
