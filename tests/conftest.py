"""
Test configuration for VCF Explorer.
"""

import sys
import pytest
from pathlib import Path

# Add src directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vcf_explorer.decoder import decode_vcf

SCENARIO_VCF = (
    "##fileformat=VCFv4.2\n"
    '##INFO=<ID=DP,Number=1,Type=Integer,Description="Depth">\n'
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n"
    "chr1\t100\trs1\tA\tG\t50\tPASS\tDP=10\n"
    "chr2\t200\t.\tC\tT,G\t.\tq10\tDP=5;SOMATIC\n"
)

SAMPLE_SCENARIO_VCF = (
    "##fileformat=VCFv4.2\n"
    '##INFO=<ID=DP,Number=1,Type=Integer,Description="Depth">\n'
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n'
    '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth">\n'
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\tS2\n"
    "chr1\t100\t.\tA\tG\t30\tPASS\tDP=10\tGT:DP\t0/1:5\t1/1:7\n"
)


# Define fixtures that can be used across tests
@pytest.fixture(scope="session")
def test_data_dir():
    """Return the path to the test data directory."""
    return Path(__file__).parent / "data"


@pytest.fixture(scope="session")
def sample_vcf_path(test_data_dir):
    """Return the path to a sample VCF file for testing."""
    vcf_path = test_data_dir / "sample.vcf"
    if not vcf_path.exists():
        pytest.skip("Sample test VCF file not found")
    return vcf_path


@pytest.fixture(scope="session")
def sample_vcf_text(sample_vcf_path):
    return sample_vcf_path.read_text()


@pytest.fixture
def scenario_text():
    """Two-record file with one INFO registry entry and no samples."""
    return SCENARIO_VCF


@pytest.fixture
def sample_scenario_text():
    """One record with two samples and GT:DP values."""
    return SAMPLE_SCENARIO_VCF


@pytest.fixture
def scenario_result(scenario_text):
    return decode_vcf(scenario_text)


@pytest.fixture
def sample_result(sample_vcf_text):
    return decode_vcf(sample_vcf_text)


@pytest.fixture
def cache_dir(tmp_path):
    """Return a fresh cache directory for each test."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    return cache_dir


@pytest.fixture
def output_dir(tmp_path):
    """Return a fresh output directory for each test."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir
