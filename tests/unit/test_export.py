"""
Unit tests for the export serializers.
"""

import io
import json
import re

import pandas as pd
import pytest

from vcf_explorer.decoder import decode_vcf
from vcf_explorer.exceptions import UnsupportedFormat, describe_error
from vcf_explorer.export import (
    ExportOptions,
    default_filename,
    serialize,
    supported_formats,
    to_csv,
    to_json,
    to_vcf,
)
from vcf_explorer.model import VcfHeader


class TestVcfExport:
    """Test VCF serialization."""
    
    def test_scenario_output(self, scenario_result):
        content = to_vcf(scenario_result.header, scenario_result.records)
        lines = content.rstrip("\n").split("\n")
        assert lines[0] == "##fileformat=VCFv4.2"
        assert lines[1] == '##INFO=<ID=DP,Description="Depth">'
        assert lines[2] == "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO"
        assert lines[3] == "chr1\t100\trs1\tA\tG\t50\tPASS\tDP=10"
        assert lines[4] == "chr2\t200\t.\tC\tT,G\t.\tq10\tDP=5;SOMATIC"
    
    def test_without_header(self, scenario_result):
        content = to_vcf(scenario_result.header, scenario_result.records, include_header=False)
        assert not content.startswith("#")
        assert content.count("\n") == 2
    
    def test_empty(self):
        assert to_vcf(VcfHeader(), [], include_header=False) == ""
        assert to_vcf(VcfHeader(), []).startswith("##fileformat=VCFv4.2\n#CHROM")
    
    def test_round_trip_scenario(self, scenario_result):
        again = decode_vcf(to_vcf(scenario_result.header, scenario_result.records))
        assert again.records == scenario_result.records
        assert again.header == scenario_result.header
    
    def test_round_trip_with_samples(self, sample_result):
        """Test that decode(export) reproduces records, registries and samples."""
        again = decode_vcf(to_vcf(sample_result.header, sample_result.records))
        assert again.records == sample_result.records
        assert again.header == sample_result.header
        assert again.warnings == []
    
    def test_sample_columns(self, sample_result):
        content = to_vcf(sample_result.header, sample_result.records[:1], include_header=False)
        assert content.rstrip("\n").endswith("\tGT:DP\t0|0:1\t1|0:8")

    def test_empty_id_kept_distinct_from_missing(self):
        """Test that an empty ID column is written back empty, not as '.'."""
        text = "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\nchr1\t1\t\tA\tC\t.\t.\t.\n"
        result = decode_vcf(text)
        assert result.records[0].id == ""
        content = to_vcf(result.header, result.records, include_header=False)
        assert content == "chr1\t1\t\tA\tC\t.\t.\t.\n"
        again = decode_vcf(to_vcf(result.header, result.records))
        assert again.records == result.records
        assert again.records[0].id == ""


class TestCsvExport:
    """Test CSV serialization."""
    
    def test_scenario_output(self, scenario_result):
        content = to_csv(scenario_result.records)
        assert content.split("\n")[:3] == [
            "CHROM,POS,ID,REF,ALT,QUAL,FILTER,INFO_DP,INFO_SOMATIC",
            "chr1,100,rs1,A,G,50,PASS,10,",
            'chr2,200,,C,"T,G",,q10,5,true',
        ]
    
    def test_two_sample_scenario(self, sample_scenario_text):
        content = to_csv(decode_vcf(sample_scenario_text).records)
        assert content.split("\n")[:2] == [
            "CHROM,POS,ID,REF,ALT,QUAL,FILTER,INFO_DP,SAMPLE_0_GT,SAMPLE_0_DP,SAMPLE_1_GT,SAMPLE_1_DP",
            "chr1,100,,A,G,30,PASS,10,0/1,5,1/1,7",
        ]

    def test_sample_columns(self, sample_result):
        df = pd.read_csv(io.StringIO(to_csv(sample_result.records)), dtype=str, keep_default_na=False)
        assert list(df.columns[-4:]) == ["SAMPLE_0_GT", "SAMPLE_0_DP", "SAMPLE_1_GT", "SAMPLE_1_DP"]
        assert len(df) == 5
        assert df.loc[0, "SAMPLE_1_GT"] == "1|0"
        assert df.loc[2, "INFO_AF"] == "0.333,0.667"
    
    def test_empty_is_header_row(self):
        assert to_csv([]) == "CHROM,POS,ID,REF,ALT,QUAL,FILTER\n"
    
    def test_column_allow_list(self, scenario_result):
        content = to_csv(scenario_result.records, columns=["POS", "CHROM", "BOGUS"])
        assert content == "POS,CHROM\n100,chr1\n200,chr2\n"


class TestJsonExport:
    """Test JSON serialization."""
    
    def test_scenario_output(self, scenario_result):
        data = json.loads(to_json(scenario_result.records))
        assert data[0] == {
            "CHROM": "chr1", "POS": 100, "ID": "rs1", "REF": "A", "ALT": ["G"],
            "QUAL": 50.0, "FILTER": ["PASS"], "INFO": {"DP": 10},
        }
        assert data[1]["ID"] is None
        assert data[1]["QUAL"] is None
        assert data[1]["INFO"] == {"DP": 5, "SOMATIC": True}
        assert "samples" not in data[1]
    
    def test_samples_included(self, sample_result):
        data = json.loads(to_json(sample_result.records))
        assert data[0]["FORMAT"] == ["GT", "DP"]
        assert data[0]["samples"][1] == {"GT": "1|0", "DP": "8"}
    
    def test_empty(self):
        assert json.loads(to_json([])) == []
    
    def test_column_allow_list(self, scenario_result):
        data = json.loads(to_json(scenario_result.records, columns=["CHROM", "INFO_DP"]))
        assert data == [{"CHROM": "chr1", "INFO_DP": 10}, {"CHROM": "chr2", "INFO_DP": 5}]


class TestSerialize:
    """Test the format dispatcher."""
    
    @pytest.mark.parametrize("fmt,media_type", [
        ("vcf", "text/plain;charset=utf-8"),
        ("csv", "text/csv;charset=utf-8"),
        ("json", "application/json;charset=utf-8"),
        ("CSV", "text/csv;charset=utf-8"),
    ])
    def test_media_types(self, scenario_result, fmt, media_type):
        payload = serialize(scenario_result.header, scenario_result.records, fmt)
        assert payload.media_type == media_type
        assert payload.filename.endswith("." + fmt.lower())
    
    def test_unsupported_format(self, scenario_result):
        with pytest.raises(UnsupportedFormat) as excinfo:
            serialize(scenario_result.header, scenario_result.records, "xml")
        assert describe_error(excinfo.value) == "Unsupported export format: xml"
    
    def test_custom_filename(self, scenario_result):
        payload = serialize(scenario_result.header, scenario_result.records, "json",
                            ExportOptions(filename="variants.json"))
        assert payload.filename == "variants.json"
        assert payload.to_bytes() == payload.content.encode("utf-8")
    
    def test_default_filename(self):
        assert re.match(r"^vcf_export_\d{4}-\d{2}-\d{2}\.csv$", default_filename("csv"))
    
    def test_supported_formats(self):
        assert supported_formats() == ["vcf", "csv", "json"]

