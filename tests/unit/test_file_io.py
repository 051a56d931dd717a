"""Unit tests for file I/O functions."""

import json
from pathlib import Path

import pytest

from lesson_compiler.utils.file_io import (
    list_files,
    output_path_for,
    read_markdown,
    write_json,
)


class TestJSONFunctions:
    """Test JSON write function."""

    def test_write_json(self, tmp_path):
        data = {"id": "moto", "sezioni": [{"id": "a"}]}
        file_path = tmp_path / "lezione.json"

        write_json(data, file_path)
        text = file_path.read_text(encoding="utf-8")
        assert json.loads(text) == data
        assert text.endswith("\n")

    def test_write_json_creates_directories(self, tmp_path):
        file_path = tmp_path / "fisica" / "cinematica" / "moto.json"
        write_json({"k": "v"}, file_path)
        assert file_path.exists()

    def test_write_json_keeps_unicode(self, tmp_path):
        file_path = tmp_path / "unicode.json"
        write_json({"titolo": "Velocità"}, file_path)
        assert "Velocità" in file_path.read_text(encoding="utf-8")


class TestMarkdownFunctions:
    def test_read_markdown(self, tmp_path):
        file_path = tmp_path / "lezione.md"
        file_path.write_text("# Titolo\n\nPerché sì.", encoding="utf-8")
        assert read_markdown(file_path) == "# Titolo\n\nPerché sì."

    def test_read_markdown_nonexistent_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_markdown(tmp_path / "manca.md")


class TestDirectoryFunctions:
    """Test file discovery and output paths."""

    def test_list_files_recursive_sorted(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "due.md").write_text("x")
        (tmp_path / "uno.md").write_text("x")
        (tmp_path / "note.txt").write_text("x")

        assert list_files(tmp_path, "*.md") == [tmp_path / "uno.md"]
        assert list_files(tmp_path, "*.md", recursive=True) == [tmp_path / "b" / "due.md", tmp_path / "uno.md"]

    def test_list_files_missing_directory(self, tmp_path):
        assert list_files(tmp_path / "manca", "*.md") == []

    def test_output_path_mirrors_input_tree(self, tmp_path):
        input_dir = tmp_path / "md"
        source = input_dir / "fisica" / "moto.md"
        assert output_path_for(source, input_dir, tmp_path / "out") == tmp_path / "out" / "fisica" / "moto.json"

    def test_output_path_outside_input_dir(self, tmp_path):
        result = output_path_for(Path("/altrove/lezione.md"), tmp_path / "md", "out")
        assert result == Path("out") / "lezione.json"
