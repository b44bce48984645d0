#!/usr/bin/env python3
"""
Command-line interface for the geocode aggregator.

Usage:
    geocode-aggregator --address "Moscow, Tverskaya 1"
    geocode-aggregator --address "Moscow, Tverskaya 1" --provider nominatim
    geocode-aggregator --reverse 55.7558 37.6173
    geocode-aggregator --suggest "Moscow, Tver"
    geocode-aggregator --compare "Moscow, Red Square"
    geocode-aggregator --batch addresses.txt --group-by city
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from geocode_aggregator.aggregator import Aggregator
from geocode_aggregator.core import settings
from geocode_aggregator.errors import GeocodeError, InvalidQueryError
from geocode_aggregator.facade import compare_providers, get_aggregator
from geocode_aggregator.models import (
    Address,
    BatchQuery,
    GeocodeQuery,
    Query,
    QueryGroup,
    ReverseQuery,
    SuggestQuery,
)

logger = logging.getLogger(__name__)


def format_coordinates(address: Address) -> str:
    """Six-decimal "lat, lon"; a missing longitude prints as "-"."""
    longitude = f"{address.longitude:.6f}" if address.longitude is not None else "-"
    return f"{address.latitude:.6f}, {longitude}"


def print_address(address: Optional[Address], verbose: bool = False) -> None:
    if address is None:
        print("✗ No match found")
        return

    print("✓ Success!")
    print(f"  Provider:  {address.provided_by}")
    print(f"  Latitude:  {address.latitude:.6f}")
    if address.longitude is not None:
        print(f"  Longitude: {address.longitude:.6f}")
    print(f"  Address:   {address.formatted_address}")
    if verbose and address.raw:
        print(f"  Raw Response: {address.raw}")


def parse_batch_line(line: str, group_by: QueryGroup, limit: int) -> Query:
    """A line is either "lat,lon" (reverse) or free-form address text."""
    parts = [part.strip() for part in line.split(",")]
    if len(parts) == 2:
        try:
            lat, lon = float(parts[0]), float(parts[1])
        except ValueError:
            pass
        else:
            return ReverseQuery.from_coordinates(lat, lon, group_by=group_by, limit=limit)
    return GeocodeQuery(line, group_by=group_by, limit=limit)


def read_batch_file(path: Path, group_by: QueryGroup, limit: int) -> BatchQuery:
    lines = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    return BatchQuery([
        parse_batch_line(line, group_by, limit)
        for line in lines
        if line and not line.startswith("#")
    ])


async def run_geocode(aggregator: Aggregator, args: argparse.Namespace) -> None:
    print(f"\nGeocoding: {args.address}")
    print(f"Provider: {args.provider or 'first match'}")
    print("-" * 50)

    query = GeocodeQuery(args.address, group_by=args.group_by, limit=args.limit)
    address = await aggregator.geocode(query, provider=args.provider, timeout=args.timeout)
    print_address(address, args.verbose)


async def run_reverse(aggregator: Aggregator, args: argparse.Namespace) -> None:
    lat, lon = args.reverse
    print(f"\nReverse geocoding: {lat}, {lon}")
    print("-" * 50)

    query = ReverseQuery.from_coordinates(lat, lon, group_by=args.group_by, limit=args.limit)
    address = await aggregator.reverse(query, provider=args.provider, timeout=args.timeout)
    print_address(address, args.verbose)


async def run_suggest(aggregator: Aggregator, args: argparse.Namespace) -> None:
    print(f"\nSuggestions for: {args.suggest}")
    print("-" * 50)

    query = SuggestQuery(args.suggest, group_by=args.group_by, limit=args.limit)
    suggestions = await aggregator.suggest(query, provider=args.provider, timeout=args.timeout)

    for suggestion in suggestions:
        print(f"  {suggestion}")
    if not suggestions:
        print("  No suggestions")
    for failure in suggestions.errors:
        print(f"  ! {failure.provider}: {failure.message}")


async def run_compare(aggregator: Aggregator, args: argparse.Namespace) -> None:
    print(f"\nComparing providers for: {args.compare}")
    print("=" * 60)

    results = await compare_providers(args.compare, aggregator=aggregator, timeout=args.timeout)

    for provider, result in results.items():
        print(f"\n{provider.upper()}:")
        if result:
            print(f"  Lat/Lng: {format_coordinates(result)}")
            print(f"  Address: {result.formatted_address}")
        else:
            print("  No match")


async def run_batch(aggregator: Aggregator, args: argparse.Namespace) -> None:
    batch = read_batch_file(Path(args.batch), args.group_by, args.limit)
    print(f"Found {len(batch)} queries in {args.batch}")

    start_time = time.time()
    results = await aggregator.batch(batch, provider=args.provider, timeout=args.timeout)
    elapsed = time.time() - start_time

    for address in results:
        print(f"  [{address.provided_by}] {format_coordinates(address)}  {address.formatted_address}")

    print(f"\n{'='*50}")
    print("BATCH SUMMARY")
    print(f"{'='*50}")
    print(f"Queries:          {len(batch)}")
    print(f"Addresses found:  {len(results)}")
    print(f"Provider errors:  {len(results.errors)}")
    print(f"Time elapsed:     {elapsed:.1f}s")

    for failure in results.errors:
        print(f"  ! {failure.provider} ({failure.query_text}): {failure.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Geocode, reverse geocode and autocomplete across configured providers"
    )

    parser.add_argument(
        "--address", "-a",
        type=str,
        help="Geocode a single address"
    )
    parser.add_argument(
        "--reverse", "-r",
        type=float,
        nargs=2,
        metavar=("LAT", "LON"),
        help="Reverse geocode a coordinate pair"
    )
    parser.add_argument(
        "--suggest", "-s",
        type=str,
        help="Autocomplete partial address text"
    )
    parser.add_argument(
        "--compare", "-c",
        type=str,
        help="Compare all providers for an address"
    )
    parser.add_argument(
        "--batch", "-b",
        type=str,
        metavar="FILE",
        help="Batch file with one address or 'lat,lon' per line"
    )
    parser.add_argument(
        "--provider", "-p",
        type=str,
        help="Pin a provider by name (e.g. 'DaData.ru', 'nominatim')"
    )
    parser.add_argument(
        "--group-by", "-g",
        type=QueryGroup,
        default=QueryGroup.NONE,
        choices=list(QueryGroup),
        metavar="{none,address,city}",
        help="Result granularity"
    )
    parser.add_argument(
        "--limit", "-l",
        type=int,
        default=10,
        help="Maximum results requested per provider"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help=f"Seconds allowed per provider call (default: {settings.PROVIDER_TIMEOUT})"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )

    if args.compare:
        command = run_compare
    elif args.address:
        command = run_geocode
    elif args.reverse:
        command = run_reverse
    elif args.suggest:
        command = run_suggest
    elif args.batch:
        command = run_batch
    else:
        parser.print_help()
        return 0

    try:
        asyncio.run(command(get_aggregator(), args))
    except InvalidQueryError as e:
        print(f"Error: {e}")
        return 2
    except OSError as e:
        print(f"Error: {e}")
        return 2
    except GeocodeError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
