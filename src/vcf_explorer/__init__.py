"""
VCF Explorer: decode, query and export Variant Call Format files.
"""

__version__ = "0.1.0"
