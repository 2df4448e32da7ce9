"""
Command-line entry point.

Usage:
    Export:  python -m cow_analytics.cli export --csv movements.csv --out public/data
             python -m cow_analytics.cli export --url https://.../export?format=csv --year 2024
    Serve:   python -m cow_analytics.cli serve --dev
"""

import argparse
import sys
from datetime import date
from typing import List, Optional

import structlog

from cow_analytics.analytics import build_dashboard, normalize_filters
from cow_analytics.config import get_settings
from cow_analytics.config.logging import configure_logging
from cow_analytics.exceptions import CowAnalyticsError
from cow_analytics.ingestion.fetcher import FileSource, HttpSource, source_from_settings
from cow_analytics.ingestion.pipeline import IngestionPipeline
from cow_analytics.serving.export import export_snapshot

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cow-analytics",
        description="COW movement ingestion and analytics",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=["json", "text"], default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Ingest a snapshot and write JSON documents")
    source = export.add_mutually_exclusive_group()
    source.add_argument("--csv", metavar="PATH", help="Local CSV snapshot")
    source.add_argument("--url", help="Published CSV export URL")
    export.add_argument("--out", metavar="DIR", default=None, help="Output directory (default: COW_OUTPUT_JSON_DIR)")
    export.add_argument("--as-of", type=date.fromisoformat, default=None,
                        help="Reference date for days on air, YYYY-MM-DD (default: today)")
    export.add_argument("--compact", action="store_true", help="Write JSON without indentation")
    export.add_argument("--year", type=int)
    export.add_argument("--region")
    export.add_argument("--vendor")
    export.add_argument("--movement-type", dest="movement_type")
    export.add_argument("--event-type", dest="event_type")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--dev", action="store_true", help="Run with auto-reload")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    return parser


def run_export(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.csv:
        source = FileSource(args.csv, encoding=settings.source.encoding)
    elif args.url:
        source = HttpSource(
            args.url,
            timeout=settings.source.fetch_timeout_seconds,
            user_agent=settings.source.user_agent,
        )
    else:
        source = source_from_settings(settings.source)

    pipeline = IngestionPipeline(source=source)
    payload = source.read()
    snapshot = pipeline.build(payload, source_id=source.source_id, as_of=args.as_of)

    filters = normalize_filters(vars(args))
    dashboard = build_dashboard(snapshot, filters)

    out_dir = args.out or settings.output.json_dir
    indent = None if args.compact else settings.output.indent
    written = export_snapshot(snapshot, out_dir, dashboard=dashboard, indent=indent)

    diagnostics = snapshot.diagnostics
    print(
        f"{len(snapshot.facts)} movements, {len(snapshot.cows)} COWs, "
        f"{len(snapshot.never_moved)} never moved, {diagnostics.rejected_rows} rows rejected"
    )
    for path in written:
        print(f"  wrote {path}")
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "cow_analytics.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.dev,
        log_level=settings.monitoring.log_level.lower(),
        access_log=True,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    if args.command == "serve":
        return run_serve(args)

    try:
        return run_export(args)
    except CowAnalyticsError as e:
        logger.error("Export failed", error_type=type(e).__name__, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
