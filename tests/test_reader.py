"""Tests for the streaming row reader."""

import asyncio
from pathlib import Path

import pytest

from detection_intake.exceptions import ParseError
from detection_intake.ingestion.reader import iter_raw_rows, stream_raw_rows

FIELDS = ["date_time", "duration", "count"]


def _write(tmp_path: Path, content: str | bytes, name: str = "sales_1.csv") -> Path:
    path = tmp_path / name
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


async def _collect(path: Path, fields: list[str]) -> list[dict[str, str]]:
    return [row async for row in stream_raw_rows(path, fields)]


class TestIterRawRows:
    """Tests for the synchronous reader."""

    def test_rows_mapped_and_trimmed(self, tmp_path: Path) -> None:
        """Test positional mapping with whitespace trimming."""
        path = _write(tmp_path, "2024-01-01T00:00:00Z, 12.5 ,3\n2024-01-02,1,1\n")
        rows = list(iter_raw_rows(path, FIELDS))
        assert rows == [
            {"date_time": "2024-01-01T00:00:00Z", "duration": "12.5", "count": "3"},
            {"date_time": "2024-01-02", "duration": "1", "count": "1"},
        ]

    def test_no_header_row(self, tmp_path: Path) -> None:
        """Test that the first line is data."""
        path = _write(tmp_path, "date_time,duration,count\n")
        rows = list(iter_raw_rows(path, FIELDS))
        assert rows == [{"date_time": "date_time", "duration": "duration", "count": "count"}]

    def test_short_row_keeps_leading_columns(self, tmp_path: Path) -> None:
        """Test that missing trailing values are absent, not empty."""
        path = _write(tmp_path, "2024-01-01,5\n")
        assert list(iter_raw_rows(path, FIELDS)) == [
            {"date_time": "2024-01-01", "duration": "5"}
        ]

    def test_empty_line_yields_empty_values(self, tmp_path: Path) -> None:
        """Test that blank lines produce a row of empty strings."""
        path = _write(tmp_path, "2024-01-01,1,1\n\n")
        rows = list(iter_raw_rows(path, FIELDS))
        assert rows[1] == {"date_time": "", "duration": "", "count": ""}

    def test_quoted_values(self, tmp_path: Path) -> None:
        """Test that quoted commas stay inside their value."""
        path = _write(tmp_path, '"a, b",x\n')
        assert list(iter_raw_rows(path, ["message", "region"])) == [
            {"message": "a, b", "region": "x"}
        ]

    def test_byte_order_mark_stripped(self, tmp_path: Path) -> None:
        """Test that a UTF-8 BOM does not leak into the first value."""
        path = _write(tmp_path, b"\xef\xbb\xbf2024-01-01,1,1\n")
        rows = list(iter_raw_rows(path, FIELDS))
        assert rows[0]["date_time"] == "2024-01-01"

    def test_too_many_columns(self, tmp_path: Path) -> None:
        """Test that long rows are a structural error."""
        path = _write(tmp_path, "2024-01-01,1,1\n2024-01-01,1,1,extra\n")
        rows = iter_raw_rows(path, FIELDS)
        assert next(rows)["count"] == "1"
        with pytest.raises(ParseError, match="line 2"):
            next(rows)

    def test_unterminated_quote(self, tmp_path: Path) -> None:
        """Test that malformed quoting is a parse error."""
        path = _write(tmp_path, '2024-01-01,"12.5\n')
        with pytest.raises(ParseError):
            list(iter_raw_rows(path, FIELDS))

    def test_undecodable_content(self, tmp_path: Path) -> None:
        """Test that non UTF-8 content is a parse error."""
        path = _write(tmp_path, b"2024-01-01,\xff\xfe,1\n")
        with pytest.raises(ParseError, match="undecodable"):
            list(iter_raw_rows(path, FIELDS))

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that I/O errors are wrapped."""
        with pytest.raises(ParseError, match="missing.csv"):
            list(iter_raw_rows(tmp_path / "missing.csv", FIELDS))


class TestStreamRawRows:
    """Tests for the async adapter."""

    def test_streams_all_rows(self, tmp_path: Path) -> None:
        """Test that the async stream yields rows in order."""
        path = _write(tmp_path, "a,1,1\nb,2,2\nc,3,3\n")
        rows = asyncio.run(_collect(path, FIELDS))
        assert [r["date_time"] for r in rows] == ["a", "b", "c"]

    def test_parse_error_propagates(self, tmp_path: Path) -> None:
        """Test that structural errors surface from the stream."""
        path = _write(tmp_path, "a,1,1,1\n")
        with pytest.raises(ParseError):
            asyncio.run(_collect(path, FIELDS))

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty file yields nothing."""
        path = _write(tmp_path, "")
        assert asyncio.run(_collect(path, FIELDS)) == []
