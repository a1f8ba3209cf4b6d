"""Command line entry point for administrative tasks"""
import argparse
import logging
import sys

from hypestream.config import settings
from hypestream.db import db
from hypestream.hype import HypeStream
from hypestream.utils.json_encoder import json_dumps

logger = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hypestream", description="HypeStream administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    import_parser = subparsers.add_parser("import-catalog", help="Import a Spotify artist catalog")
    import_parser.add_argument("--user-id", required=True, help="User who will own the imported tracks")
    import_parser.add_argument("--artist-id", default=None, help="Spotify artist id (defaults to FEATURED_ARTIST_ID)")

    feed_parser = subparsers.add_parser("feed", help="Print a user's discovery feed")
    feed_parser.add_argument("--user-id", required=True)
    feed_parser.add_argument("--limit", type=int, default=None)

    stats_parser = subparsers.add_parser("stats", help="Print a user's listening stats for today")
    stats_parser.add_argument("--user-id", required=True)

    return parser

def run(argv=None) -> int:
    """Run one administrative command, returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), format='%(message)s')

    try:
        db.init()
        app = HypeStream(settings, database=db)

        if args.command == "init-db":
            result = {"initialized": True}
        elif args.command == "import-catalog":
            created = app.import_catalog(args.user_id, artist_id=args.artist_id)
            result = {"created": created}
        elif args.command == "feed":
            result = app.discovery_feed(args.user_id, limit=args.limit)
        else:
            result = app.user_stats(args.user_id)

        print(json_dumps(result, indent=2))
        return 0

    except Exception as e:
        logger.exception(f"Error running '{args.command}': {e}")
        return 1
    finally:
        db.dispose()

if __name__ == "__main__":
    sys.exit(run())
