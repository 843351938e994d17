"""
Command-line interface module for VCF Explorer.
Handles argument parsing and configuration.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler

from vcf_explorer.exceptions import QueryError
from vcf_explorer.export import supported_formats
from vcf_explorer.query import FieldFilter, FilterKind, NUMERIC_OPERATORS, OPERATOR_ALIASES, SortKey
from vcf_explorer.sources import DEFAULT_TIMEOUT
from vcf_explorer.workflow import console, run_explorer_workflow

TEXT_OPERATORS = ("contains",)
SELECT_OPERATORS = ("in", "is")


def setup_logging(verbose: bool = False) -> None:
    """Install the rich log handler on the root logger."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
        force=True,
    )


def parse_filter(expression: str):
    """
    Parse a ``FIELD:OP:VALUE`` filter expression.
    
    Args:
        expression: e.g. ``QUAL:gte:30``, ``CHROM:in:chr1,chr2`` or ``INFO_GENE:contains:BRCA``
        
    Returns:
        Tuple of (field name, FieldFilter)
        
    Raises:
        QueryError: If the expression or operator is invalid
    """
    parts = expression.split(":", 2)
    if len(parts) != 3 or not parts[0]:
        raise QueryError("Filter must look like FIELD:OP:VALUE", details=expression)
    field, operator, value = parts
    operator = operator.lower()
    
    if operator in TEXT_OPERATORS:
        return field, FieldFilter(FilterKind.TEXT, value)
    if operator in NUMERIC_OPERATORS or operator in OPERATOR_ALIASES:
        return field, FieldFilter(FilterKind.NUMBER, value, operator)
    if operator in SELECT_OPERATORS:
        if operator == "in":
            return field, FieldFilter(FilterKind.SELECT, [v for v in value.split(",") if v])
        return field, FieldFilter(FilterKind.SELECT, value)
    raise QueryError("Unknown filter operator", details=operator)


def parse_sort(expressions: Sequence[str]) -> List[SortKey]:
    """
    Parse ``FIELD[:asc|desc]`` sort expressions, earlier ones taking priority.
    """
    keys = []
    for priority, expression in enumerate(expressions):
        field, _, direction = expression.partition(":")
        keys.append(SortKey(field, (direction or "asc").lower(), priority))
    return keys


def parse_args(argv: Optional[Sequence[str]] = None):
    """
    Parse command-line arguments for VCF Explorer.
    
    Args:
        argv: Argument list (defaults to sys.argv[1:])
    
    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="vcf-explorer",
        description="Decode, query and export VCF files",
    )
    
    # Input/output arguments
    parser.add_argument("source", help="Path or http(s) URL of a .vcf or .vcf.gz file")
    parser.add_argument("--output", "-o", type=str,
                        help="Write the export to this file instead of stdout")
    parser.add_argument("--format", "-f", dest="fmt", default="vcf", type=str.lower,
                        choices=supported_formats(),
                        help="Export format")
    parser.add_argument("--columns", nargs="+",
                        help="Column allow-list for CSV/JSON export")
    parser.add_argument("--no-header", action="store_true",
                        help="Omit header lines from VCF export")
    parser.add_argument("--list-columns", action="store_true",
                        help="Print the column catalog and exit")
    
    # Query arguments
    parser.add_argument("--search", "-s", default="",
                        help="Free-text search across all fields (case-insensitive)")
    parser.add_argument("--filter", dest="filters", action="append", default=[],
                        metavar="FIELD:OP:VALUE",
                        help="Field filter; OP is contains, gt, lt, gte, lte, eq, in or is")
    parser.add_argument("--sort", dest="sort", action="append", default=[],
                        metavar="FIELD[:asc|desc]",
                        help="Sort key; repeat for secondary keys")
    
    # Caching arguments
    parser.add_argument("--cache-dir", default="./cache",
                        help="Directory for caching decoded files")
    parser.add_argument("--cache-max-age", type=int, default=24,
                        help="Maximum age of cache in hours")
    parser.add_argument("--no-cache", action="store_true",
                        help="Disable caching")
    
    # Misc
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help="Network timeout in seconds for URL sources")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    
    args = parser.parse_args(argv)
    
    # Turn query expressions into filter and sort descriptors
    try:
        args.filters = dict(parse_filter(expression) for expression in args.filters)
        args.sort = parse_sort(args.sort)
    except QueryError as e:
        parser.error(str(e))
    
    # Convert string paths to Path objects
    args.cache_dir = Path(args.cache_dir)
    if args.output:
        args.output = Path(args.output)
    
    return args


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    run_explorer_workflow(args)


if __name__ == "__main__":
    main(sys.argv[1:])
