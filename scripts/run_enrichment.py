#!/usr/bin/env python3
"""
Run one user's contact enrichment in the foreground (no RQ worker).

Usage:
    python scripts/run_enrichment.py USER_ID            # never-attempted contacts only
    python scripts/run_enrichment.py USER_ID --force    # also stale matches / old misses
    python scripts/run_enrichment.py USER_ID --stats    # print coverage and exit
    python scripts/run_enrichment.py --sweep            # queue RQ runs for every user with contacts

Requires: APOLLO_API_KEY, DATABASE_URL (or defaults to sqlite:///local.db).
Ctrl-C stops after the current contact; work done so far is kept.
"""
import sys
import os
import json
import signal
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import session_scope
from app.logging_config import configure_logging
from app.pipeline.manager import EnrichmentOptions, launch_enrichment_for_all_users, run_enrichment
from app.pipeline.progress import CancellationToken
from app.services.store import get_enrichment_stats


def _print_progress(result):
    print(f"\r  enriched={result.enriched} skipped={result.skipped} "
          f"errors={result.errors} / {result.total}", end='', flush=True)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Enrich a user\'s contacts via Apollo')
    parser.add_argument('user_id', nargs='?')
    parser.add_argument('--force', action='store_true', help='re-check stale matches and old misses')
    parser.add_argument('--stats', action='store_true', help='print enrichment coverage and exit')
    parser.add_argument('--sweep', action='store_true', help='queue background runs for every user with contacts')
    args = parser.parse_args(argv)
    if not args.sweep and not args.user_id:
        parser.error('user_id is required unless --sweep is given')

    configure_logging()

    if args.sweep:
        queued = launch_enrichment_for_all_users(force=args.force)
        print(json.dumps({'queued': queued}, indent=2))
        return 0

    if args.stats:
        with session_scope() as session:
            print(json.dumps(get_enrichment_stats(session, args.user_id), indent=2))
        return 0

    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda *_: token.cancel())

    result = run_enrichment(
        args.user_id,
        EnrichmentOptions(force=args.force),
        on_progress=_print_progress,
        cancel=token,
    )
    print()
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.error_message else 0


if __name__ == '__main__':
    sys.exit(main())
