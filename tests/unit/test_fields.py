"""
Unit tests for field naming, value rendering and the column catalog.
"""

import pytest

from vcf_explorer.fields import (
    column_catalog,
    field_value,
    info_to_text,
    parse_sample_field,
    searchable_text,
    to_text,
)


class TestToText:
    """Test string rendering of field values."""
    
    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (True, "true"),
        (50.0, "50"),
        (0.25, "0.25"),
        (7, "7"),
        (("T", "G"), "T,G"),
        ((), ""),
        ("PASS", "PASS"),
    ])
    def test_to_text(self, value, expected):
        assert to_text(value) == expected
    
    def test_info_to_text(self):
        assert info_to_text({"DP": 5, "SOMATIC": True}) == "DP=5;SOMATIC"
        assert info_to_text({}) == "."


class TestFieldNames:
    """Test field name resolution."""
    
    def test_parse_sample_field(self):
        assert parse_sample_field("SAMPLE_0_GT") == (0, "GT")
        assert parse_sample_field("SAMPLE_12_AD_X") == (12, "AD_X")
        assert parse_sample_field("SAMPLE_x_GT") is None
        assert parse_sample_field("SAMPLE_0") is None
        assert parse_sample_field("INFO_DP") is None
    
    def test_field_value(self, sample_result):
        record = sample_result.records[0]
        assert field_value(record, "CHROM") == "chr1"
        assert field_value(record, "POS") == 14370
        assert field_value(record, "ALT") == ("A",)
        assert field_value(record, "INFO_DP") == 14
        assert field_value(record, "INFO_MISSING") is None
        assert field_value(record, "SAMPLE_1_GT") == "1|0"
        assert field_value(record, "SAMPLE_5_GT") is None
        assert field_value(record, "UNKNOWN") is None
    
    def test_searchable_text_covers_info_and_samples(self, sample_result):
        texts = searchable_text(sample_result.records[0])
        assert "DP=14;AF=0.5;GENE=BRCA1;DB" in texts
        assert "1|0" in texts
        assert "rs6054257" in texts


class TestColumnCatalog:
    """Test the column catalog."""
    
    def test_fixed_columns_first(self, scenario_result):
        catalog = column_catalog(scenario_result.header)
        assert [c.field for c in catalog] == [
            "CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO_DP",
        ]
        assert [c.display_name for c in catalog[:7]] == [
            "Chromosome", "Position", "ID", "Reference", "Alternative", "Quality", "Filter",
        ]
        assert catalog[7].display_name == "DP"
    
    def test_info_kinds_inferred(self, sample_result):
        catalog = {c.field: c for c in column_catalog(sample_result.header, sample_result.records)}
        assert catalog["POS"].kind == "number"
        assert catalog["INFO_DP"].kind == "number"
        assert catalog["INFO_DB"].kind == "flag"
        assert catalog["INFO_GENE"].kind == "text"
        assert catalog["INFO_AF"].kind == "text"
    
    def test_kinds_default_to_text_without_records(self, sample_result):
        catalog = column_catalog(sample_result.header)
        assert all(c.kind == "text" for c in catalog if c.field.startswith("INFO_"))
