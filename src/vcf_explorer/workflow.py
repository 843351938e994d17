"""
Workflow module for VCF Explorer.
Orchestrates a command-line run: acquire, decode (or restore from cache),
query and export.
"""

import sys
import logging
import traceback
from typing import Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from vcf_explorer.caching import DecodeCache
from vcf_explorer.decoder import DecodeResult, decode_vcf
from vcf_explorer.exceptions import RecordSkipped, VcfExplorerError, describe_error
from vcf_explorer.export import ExportOptions, ExportPayload
from vcf_explorer.query import QuerySpec
from vcf_explorer.session import ExplorerSession
from vcf_explorer.sources import read_source, validate_location

# Configure logging
log = logging.getLogger("vcf-explorer")
# Status output goes to stderr so an export written to stdout stays clean
console = Console(stderr=True)

CACHE_KIND = "decoded"
MAX_REPORTED_SKIPS = 10


def setup_cache(args) -> Optional[DecodeCache]:
    """
    Create the decode cache unless caching is disabled.
    
    Args:
        args: Command-line arguments namespace
    """
    if args.no_cache:
        return None
    cache = DecodeCache(cache_dir=args.cache_dir, max_age_hours=args.cache_max_age)
    cache.clean_expired()
    return cache


def print_configuration(args, cache: Optional[DecodeCache]) -> None:
    """
    Print configuration information.
    
    Args:
        args: Command-line arguments namespace
        cache: DecodeCache instance, or None when disabled
    """
    console.print("[bold]VCF Explorer[/]")
    console.print("Configuration:")
    console.print(f"  Source: {args.source}")
    console.print(f"  Export Format: {args.fmt.upper()}")
    console.print(f"  Output: {args.output or 'stdout'}")
    console.print(f"  Search: {args.search or '-'}")
    console.print(f"  Filters: {len(args.filters)}")
    console.print(f"  Sort Keys: {', '.join(f'{k.field} {k.direction}' for k in args.sort) or '-'}")
    console.print(f"  Caching: {'Enabled' if cache else 'Disabled'}")
    
    if cache:
        console.print("Cache Statistics:")
        console.print(f"  Location: {args.cache_dir}")
        console.print(f"  Total Entries: {cache.count_entries()}")
        console.print(f"  Total Size: {cache.get_total_size():.2f} MB")
    console.print("")


def decode_with_progress(text: str) -> DecodeResult:
    """Decode text while driving a rich progress bar."""
    with Progress(
        TextColumn("Decoding"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("decode", total=100)
        return decode_vcf(text, progress_callback=lambda p: progress.update(task, completed=p))


def load_model(args, cache: Optional[DecodeCache]) -> DecodeResult:
    """
    Acquire and decode the source, consulting the cache first.
    
    Args:
        args: Command-line arguments namespace
        cache: DecodeCache instance, or None when disabled
    
    Returns:
        DecodeResult for the source
    """
    if not validate_location(args.source):
        log.warning(f"{args.source} does not look like a .vcf or .vcf.gz file, trying anyway")
    
    if cache:
        cached = cache.get(args.source, CACHE_KIND)
        if isinstance(cached, DecodeResult):
            return cached
    
    text = read_source(args.source, timeout=args.timeout)
    result = decode_with_progress(text)
    
    if cache:
        cache.set(result, args.source, CACHE_KIND)
    return result


def report_skipped(result: DecodeResult) -> None:
    """Print the lines the decoder dropped."""
    skipped = [w for w in result.warnings if isinstance(w, RecordSkipped)]
    if not skipped:
        return
    console.print(f"[yellow]Skipped {len(skipped):,} malformed record line(s)[/]")
    for warning in skipped[:MAX_REPORTED_SKIPS]:
        console.print(f"  {warning}")
    if len(skipped) > MAX_REPORTED_SKIPS:
        console.print(f"  ... and {len(skipped) - MAX_REPORTED_SKIPS:,} more")


def print_columns(session: ExplorerSession) -> None:
    table = Table(title="Columns")
    table.add_column("Field")
    table.add_column("Name")
    table.add_column("Kind")
    for column in session.columns():
        table.add_row(column.field, column.display_name, column.kind)
    console.print(table)


def write_payload(payload: ExportPayload, args) -> None:
    """Write the export to ``--output`` or stdout."""
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_bytes(payload.to_bytes())
        console.print(f"Export saved to: {args.output} ({payload.media_type})")
    else:
        sys.stdout.write(payload.content)
        sys.stdout.flush()


def run_explorer_workflow(args) -> ExplorerSession:
    """
    Run a complete explorer session from command-line arguments.
    
    Args:
        args: Command-line arguments namespace
    
    Returns:
        The session used for the run
    """
    try:
        # Step 1: Set up cache
        cache = setup_cache(args)
        
        # Step 2: Print configuration
        print_configuration(args, cache)
        
        # Step 3: Acquire and decode
        result = load_model(args, cache)
        session = ExplorerSession()
        session.load_data(result.data, result.warnings)
        report_skipped(result)
        
        # Step 4: Column listing only
        if args.list_columns:
            print_columns(session)
            return session
        
        # Step 5: Evaluate the query
        session.query = QuerySpec(search=args.search, filters=args.filters, sort=args.sort)
        console.print(f"Matched {len(session.view):,} of {len(session.data):,} records")
        
        # Step 6: Export
        payload = session.export(args.fmt, ExportOptions(
            include_header=not args.no_header,
            columns=args.columns,
            filename=args.output.name if args.output else None,
        ))
        write_payload(payload, args)
        return session
    
    except VcfExplorerError as e:
        console.print(f"[bold red]Error:[/] {describe_error(e)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Unhandled exception:[/] {e}")
        console.print(traceback.format_exc())
        sys.exit(1)
