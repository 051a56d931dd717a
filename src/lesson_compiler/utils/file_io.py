"""File I/O utilities for lesson sources and compiled output."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


# ============================================================================
# JSON Functions
# ============================================================================


def write_json(
    data: Union[Dict[str, Any], List[Any]],
    file_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False,
) -> None:
    """Write data to JSON file with pretty printing.

    Creates parent directories if they don't exist.

    Args:
        data: Data to write (dict or list)
        file_path: Path to output JSON file
        indent: Number of spaces for indentation (default: 2)
        ensure_ascii: If False, non-ASCII characters are preserved (default: False)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Writing JSON to {file_path}")

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii)
        f.write("\n")

    logger.info(f"Wrote JSON to {file_path}")


# ============================================================================
# Markdown Functions
# ============================================================================


def read_markdown(file_path: Union[str, Path]) -> str:
    """Read markdown file and return content as string.

    Args:
        file_path: Path to markdown file

    Returns:
        File content as string

    Raises:
        FileNotFoundError: If file doesn't exist
        UnicodeDecodeError: If the file is not UTF-8
    """
    file_path = Path(file_path)
    logger.debug(f"Reading markdown from {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        content = f.read()

    logger.debug(f"Read {len(content)} characters from {file_path}")
    return content


# ============================================================================
# Directory Management
# ============================================================================


def list_files(
    directory: Union[str, Path],
    pattern: str = "*",
    recursive: bool = False,
) -> List[Path]:
    """List files in directory matching pattern, sorted by path.

    Args:
        directory: Directory to search
        pattern: Glob pattern (default: '*' = all files)
        recursive: If True, search recursively (default: False)

    Returns:
        List of Path objects matching pattern

    Example:
        >>> list_files('examples/md', '*.md', recursive=True)
        [Path('examples/md/fisica/moto.md'), ...]
    """
    directory = Path(directory)

    if not directory.exists():
        logger.warning(f"Directory does not exist: {directory}")
        return []

    if recursive:
        files = list(directory.rglob(pattern))
    else:
        files = list(directory.glob(pattern))

    files = sorted(f for f in files if f.is_file())

    logger.debug(f"Found {len(files)} files in {directory} matching '{pattern}'")
    return files


def output_path_for(
    input_file: Union[str, Path],
    input_dir: Union[str, Path],
    output_dir: Union[str, Path],
) -> Path:
    """Get the JSON output path mirroring ``input_file`` under ``output_dir``.

    Files outside ``input_dir`` are placed directly in ``output_dir``.

    Example:
        >>> output_path_for('examples/md/fisica/moto.md', 'examples/md', 'output')
        Path('output/fisica/moto.json')
    """
    input_file = Path(input_file)
    try:
        relative = input_file.resolve().relative_to(Path(input_dir).resolve())
    except ValueError:
        relative = Path(input_file.name)
    return Path(output_dir) / relative.with_suffix(".json")
