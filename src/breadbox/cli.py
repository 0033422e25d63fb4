#!/usr/bin/env python3
"""breadbox CLI for inspecting and pruning table rows."""

import argparse
import asyncio
import re

import questionary
from rich.console import Console
from rich.table import Table

from breadbox import db
from breadbox.bread import BrowseResult, TableBread
from breadbox.config import configure_logging
from breadbox.errors import BreadError, MisuseError
from breadbox.query.specs import Filter, Pagination, Search, Sort
from breadbox.result import Found

console = Console()

_FILTER_PATTERN = re.compile(r"^\s*([^=<>\s]+)\s*(>=|<=|<>|=|>|<)(.*)$")


def parse_value(text: str):
    """Interpret a command-line value as int, float or string, in that order."""
    text = text.strip()
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    return text


def parse_filter(text: str) -> Filter:
    """
    Parse ``field=value``, ``field>=value`` and friends.

    ``field=a,b,c`` becomes a membership filter.
    """
    match = _FILTER_PATTERN.match(text)
    if not match:
        raise argparse.ArgumentTypeError(f"Invalid filter: {text!r}")
    field, comparison, raw = match.groups()
    if comparison == "=" and "," in raw:
        return Filter(field, [parse_value(v) for v in raw.split(",")])
    return Filter(field, parse_value(raw), comparison)


def parse_sort(text: str) -> Sort:
    """``name`` or ``name:asc`` sorts ascending, ``name:desc`` descending."""
    field, _, order = text.partition(":")
    try:
        return Sort(field.strip(), order.strip() or "asc")
    except MisuseError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_id(text: str):
    """Keep ids as strings unless they are written as a plain integer."""
    try:
        key = int(text)
    except ValueError:
        return text
    return key if str(key) == text else text


def render_records(title: str, records: list[dict]) -> Table:
    table = Table(title=title)
    columns = list(records[0]) if records else []
    for column in columns:
        table.add_column(column)
    for record in records:
        table.add_row(*("" if record.get(c) is None else str(record.get(c)) for c in columns))
    return table


def build_bread(args) -> TableBread:
    return TableBread(
        db.get_backend(args.database_url),
        args.table,
        primary_key=args.primary_key,
    )


async def browse(args) -> BrowseResult:
    """Browse a table with the filters, search, sorting and page from the command line."""
    search = None
    if args.search is not None:
        if not args.fields:
            raise BreadError("--search needs --fields")
        search = Search(args.search, tuple(f.strip() for f in args.fields.split(",")))

    pagination = Pagination(args.count, args.page) if args.count else None
    if args.page and not args.count:
        raise BreadError("--page needs --count")

    bread = build_bread(args)
    result = await bread.browse(
        filters=args.filter,
        search=search,
        sorting=args.sort,
        pagination=pagination,
    )

    console.print(render_records(args.table, result.records))
    if result.total_records is not None:
        console.print(
            f"[dim]Page {args.page} of {args.count} per page, "
            f"{result.total_records} matching records.[/]"
        )
    return result


async def read(args) -> None:
    """Show one record."""
    bread = build_bread(args)
    result = await bread.read(parse_id(args.id))
    if isinstance(result, Found):
        console.print(render_records(args.table, [result.value]))
    else:
        console.print(f"[red]No record {args.id} in {args.table}.[/]")


async def delete(args) -> None:
    """Delete one record after confirmation."""
    bread = build_bread(args)
    key = parse_id(args.id)

    current = await bread.read(key)
    if not current:
        console.print(f"[red]No record {args.id} in {args.table}.[/]")
        return

    console.print(render_records(args.table, [current.value]))
    if not args.yes and not questionary.confirm("Delete this record?").ask():
        console.print("[dim]Cancelled.[/]")
        return

    deleted = await bread.delete(key)
    if deleted:
        console.print(f"[green]Deleted record {args.id} from {args.table}.[/]")
    else:
        console.print(f"[yellow]Record {args.id} was already gone.[/]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="breadbox CLI")
    parser.add_argument("--database-url", help="Defaults to DATABASE_URL")
    parser.add_argument("--primary-key", default="id", help="Primary key column")
    subparsers = parser.add_subparsers(dest="command", required=True)

    browse_parser = subparsers.add_parser("browse", help="List records")
    browse_parser.add_argument("table")
    browse_parser.add_argument("--filter", action="append", type=parse_filter, default=[])
    browse_parser.add_argument("--search", help="Substring to search for")
    browse_parser.add_argument("--fields", help="Comma-separated fields to search")
    browse_parser.add_argument(
        "--sort", action="append", type=parse_sort, default=[],
        help="FIELD or FIELD:desc, repeatable",
    )
    browse_parser.add_argument("--count", type=int, help="Records per page")
    browse_parser.add_argument("--page", type=int, help="Page number, starting at 1")

    read_parser = subparsers.add_parser("read", help="Show one record")
    read_parser.add_argument("table")
    read_parser.add_argument("id")

    delete_parser = subparsers.add_parser("delete", help="Delete one record")
    delete_parser.add_argument("table")
    delete_parser.add_argument("id")
    delete_parser.add_argument("--yes", action="store_true", help="Skip confirmation")

    return parser


async def run(args) -> None:
    try:
        if args.command == "browse":
            await browse(args)
        elif args.command == "read":
            await read(args)
        elif args.command == "delete":
            await delete(args)
    finally:
        await db.close_all()


def main():
    configure_logging()
    args = build_parser().parse_args()
    try:
        asyncio.run(run(args))
    except BreadError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
