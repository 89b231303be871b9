"""
CLI commands for the AWS Service Catalog.

Provides command-line interface for:
- Database initialization and seeding
- Exporting a service comparison to CSV or PDF
- Serving the API with uvicorn

Usage:
    python -m aws_catalog.cli init-db
    python -m aws_catalog.cli serve --host 0.0.0.0 --port 8000
    python -m aws_catalog.cli export --service-id ID --service-id ID --format csv --output out.csv
    python -m aws_catalog.cli --help
"""
import asyncio
import sys
import argparse
from pathlib import Path

import uvicorn

from aws_catalog.database import (
    SessionLocal,
    ensure_default_attributes,
    ensure_default_categories,
    init_db,
)
from aws_catalog.errors import CatalogError
from aws_catalog.services.comparison import build_comparison
from aws_catalog.services.export import parse_export_format, render_export
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Create missing tables and seed default categories and attributes.

    Returns:
        0 on success
    """
    init_db()

    session = SessionLocal()
    try:
        categories = ensure_default_categories(session)
        attributes = ensure_default_attributes(session)
    finally:
        session.close()

    print(f"Database ready. Created {len(categories)} categories, {len(attributes)} attributes.")
    logger.info("Database initialized from CLI")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """
    Build a comparison and write it to a file.

    Returns:
        0 on success
        1 on a catalog error (invalid input, unknown services, render failure)
    """
    session = SessionLocal()
    try:
        export_format = parse_export_format(args.format)
        matrix = build_comparison(session, args.service_ids, args.attribute_ids)
        content, _ = asyncio.run(render_export(matrix, export_format))
    except CatalogError as e:
        logger.warning(f"CLI export failed: {e!r}")
        print(f"Export failed [{e.code}]: {e.message}", file=sys.stderr)
        if e.details is not None:
            print(f"Details: {e.details}", file=sys.stderr)
        return 1
    finally:
        session.close()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(content)

    print(f"Wrote {export_format.value.upper()} comparison of {matrix.service_count} services to {output}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API with uvicorn until interrupted."""
    logger.info(f"Starting API on {args.host}:{args.port}")
    uvicorn.run("aws_catalog.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="aws-catalog",
        description="AWS Service Catalog CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db command
    init_parser = subparsers.add_parser(
        "init-db",
        help="Create tables and seed default categories and comparison attributes"
    )
    init_parser.set_defaults(func=cmd_init_db)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export a comparison of up to five services"
    )
    export_parser.add_argument(
        "--service-id", dest="service_ids", action="append", required=True,
        help="Service ID to compare (repeat for each service)"
    )
    export_parser.add_argument(
        "--attribute-id", dest="attribute_ids", action="append", default=None,
        help="Additional comparison attribute ID (repeatable)"
    )
    export_parser.add_argument("--format", required=True, help="csv or pdf")
    export_parser.add_argument("--output", required=True, help="Output file path")
    export_parser.set_defaults(func=cmd_export)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
