from app.services.format_detection_service import detect_format, find_wide_families, get_column_mapping

class TestColumnMapping:
    """Tests for header alias detection"""

    def test_aliases_are_case_insensitive(self):
        mapping = get_column_mapping(["Specialty Name", " Median ", "Geographic Region"])
        assert mapping["specialty"] == "Specialty Name"
        assert mapping["p50"] == " Median "
        assert mapping["geographic_region"] == "Geographic Region"

    def test_first_matching_header_wins(self):
        mapping = get_column_mapping(["region", "market"])
        assert mapping["geographic_region"] == "region"

    def test_unknown_headers_are_ignored(self):
        assert get_column_mapping(["foo", "bar"]) == {}

class TestWideFamilies:
    def test_groups_by_base(self):
        families = find_wide_families(["specialty", "tcc_p25", "TCC_p50", "work_rvus_p90"])
        assert families == {
            "tcc": {"p25": "tcc_p25", "p50": "TCC_p50"},
            "work_rvus": {"p90": "work_rvus_p90"},
        }

    def test_ordinal_suffixes(self):
        families = find_wide_families(["tcc_50th", "tcc_90th"])
        assert families == {"tcc": {"p50": "tcc_50th", "p90": "tcc_90th"}}

class TestDetectFormat:
    """Tests for LONG / WIDE layout detection"""

    def test_long_format(self):
        result = detect_format(["specialty", "variable", "p25", "p50", "p75", "p90"])
        assert result.format == "long"
        assert result.confidence == 100
        assert result.missing_required == []
        assert any("optional columns" in s for s in result.suggestions)

    def test_long_format_with_optional_columns(self):
        result = detect_format([
            "Specialty", "Variable", "Region", "n_incumbents", "P25", "P50", "P75", "P90",
        ])
        assert result.format == "long"
        assert not any("optional columns" in s for s in result.suggestions)

    def test_partial_long_format(self):
        result = detect_format(["specialty", "variable", "p50"])
        assert result.format is None
        assert result.confidence == 50
        assert result.missing_required == ["p25", "p75", "p90"]
        assert "Add missing columns: p25, p75, p90" in result.suggestions

    def test_wide_format(self):
        result = detect_format(["specialty", "region", "tcc_p25", "tcc_p50", "tcc_p75", "tcc_p90", "wrvu_p50"])
        assert result.format == "wide"
        assert result.confidence == 100
        assert result.detected_variables == ["tcc", "wrvu"]
        assert result.missing_required == []

    def test_wide_format_without_complete_family(self):
        result = detect_format(["specialty", "tcc_p50"])
        assert result.format == "wide"
        assert result.confidence == 70

    def test_unrecognized_headers(self):
        result = detect_format(["foo", "bar"])
        assert result.format is None
        assert result.confidence == 0
        assert result.missing_required == ["specialty", "variable", "p25", "p50", "p75", "p90"]
        assert any("specialty column is required" in s for s in result.suggestions)
        assert result.detected_columns == ["foo", "bar"]
