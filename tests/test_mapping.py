"""Tests for filename-to-schema resolution."""

from detection_intake.config import FieldMapEntry
from detection_intake.ingestion import resolve_field_mapping

FIELD_MAP = [
    FieldMapEntry(match_token="sales", spacing=0, fields=["date_time", "count"]),
    FieldMapEntry(match_token="cam", spacing=1, fields=["camera_name"]),
    FieldMapEntry(match_token="2024", spacing=1, fields=["region"]),
]


class TestResolveFieldMapping:
    """Tests for resolve_field_mapping."""

    def test_match_on_first_part(self) -> None:
        """Test matching the first underscore-separated part."""
        assert resolve_field_mapping("sales_2024_storeA.csv", FIELD_MAP) == [
            "date_time",
            "count",
        ]

    def test_match_on_later_part(self) -> None:
        """Test matching a part other than the first."""
        assert resolve_field_mapping("store7_cam_entry.csv", FIELD_MAP) == [
            "camera_name"
        ]

    def test_no_match(self) -> None:
        """Test that unknown files resolve to None."""
        assert resolve_field_mapping("unknown_file.csv", FIELD_MAP) is None

    def test_index_out_of_range(self) -> None:
        """Test that short filenames never match entries beyond their parts."""
        assert resolve_field_mapping("cam.csv", FIELD_MAP) is None

    def test_whole_part_must_match(self) -> None:
        """Test that the part is compared exactly, extension included."""
        assert resolve_field_mapping("x_cam.csv", FIELD_MAP) is None
        assert resolve_field_mapping("salesreport_1.csv", FIELD_MAP) is None

    def test_first_match_wins(self) -> None:
        """Test that declaration order decides between matching entries."""
        assert resolve_field_mapping("sales_2024_x.csv", FIELD_MAP) == [
            "date_time",
            "count",
        ]
        reordered = [FIELD_MAP[2], FIELD_MAP[0]]
        assert resolve_field_mapping("sales_2024_x.csv", reordered) == ["region"]

    def test_returns_copy(self) -> None:
        """Test that callers cannot mutate the configured fields."""
        fields = resolve_field_mapping("sales_1.csv", FIELD_MAP)
        assert fields is not None
        fields.append("extra")
        assert FIELD_MAP[0].fields == ["date_time", "count"]

    def test_empty_field_map(self) -> None:
        """Test that nothing matches without rules."""
        assert resolve_field_mapping("sales_1.csv", []) is None
