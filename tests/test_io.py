"""Tests for chunkscribe.io module - JSON and binary I/O utilities."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chunkscribe.io import read_bytes, read_json, write_bytes, write_json


class TestReadJson:
    def test_read_valid_json(self, tmp_path: Path) -> None:
        data = {"key": "value", "number": 42}
        json_file = tmp_path / "test.json"
        json_file.write_text(json.dumps(data))

        assert read_json(json_file) == data

    def test_read_json_with_unicode(self, tmp_path: Path) -> None:
        json_file = tmp_path / "test.json"
        json_file.write_text(json.dumps({"message": "Buenos días"}), encoding="utf-8")

        assert read_json(json_file)["message"] == "Buenos días"

    def test_read_nonexistent_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_json(tmp_path / "nonexistent.json")

    def test_read_invalid_json_raises(self, tmp_path: Path) -> None:
        json_file = tmp_path / "invalid.json"
        json_file.write_text("{invalid json}")

        with pytest.raises(json.JSONDecodeError):
            read_json(json_file)


class TestWriteJson:
    def test_write_json_keeps_unicode(self, tmp_path: Path) -> None:
        json_file = tmp_path / "out.json"

        write_json(json_file, {"topic": "Pronóstico"})

        assert "Pronóstico" in json_file.read_text(encoding="utf-8")
        assert read_json(json_file) == {"topic": "Pronóstico"}

    def test_write_json_creates_parent_directories(self, tmp_path: Path) -> None:
        json_file = tmp_path / "a" / "b" / "out.json"

        write_json(json_file, {"ok": True})

        assert json_file.exists()

    def test_write_json_overwrites(self, tmp_path: Path) -> None:
        json_file = tmp_path / "out.json"
        write_json(json_file, {"v": 1})
        write_json(json_file, {"v": 2})

        assert read_json(json_file) == {"v": 2}


class TestBytes:
    def test_write_then_read(self, tmp_path: Path) -> None:
        path = tmp_path / "chunk.bin"
        write_bytes(path, b"\x00\x01\xff")

        assert read_bytes(path) == b"\x00\x01\xff"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        write_bytes(tmp_path / "chunk.bin", b"data")

        assert [p.name for p in tmp_path.iterdir()] == ["chunk.bin"]
