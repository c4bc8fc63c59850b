#!/usr/bin/env python3
"""
Score every active lead (or the given ones) with AI, one at a time.

Usage:
    python scripts/score_all_leads.py                    # stale leads only
    python scripts/score_all_leads.py --force            # rescore everything
    python scripts/score_all_leads.py --lead-id L1 --lead-id L2
    python scripts/score_all_leads.py --status NEW --status CONTACTED --delay 1

Requires: OPENAI_API_KEY and DATABASE_URL (defaults to sqlite:///local.db).
Exits 1 when any lead failed to score.
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lead_engine.logging_config import configure_logging
from lead_engine.services.batch import score_all_leads


def build_parser():
    parser = argparse.ArgumentParser(description='Batch AI lead scoring')
    parser.add_argument('--force', action='store_true', help='rescore leads whose score is still fresh')
    parser.add_argument('--delay', type=float, default=None, help='seconds to wait between leads')
    parser.add_argument('--lead-id', action='append', dest='lead_ids', help='score only this lead (repeatable)')
    parser.add_argument('--status', action='append', dest='statuses', help='restrict to lead status (repeatable)')
    parser.add_argument('--no-notify', action='store_true', help='skip the Slack summary')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging()

    summary = score_all_leads(
        lead_ids=args.lead_ids,
        force=args.force,
        delay=args.delay,
        statuses=args.statuses,
        notify=not args.no_notify,
    )

    print(f"\nProcessed: {summary.processed}")
    print(f"Scored:    {summary.succeeded}")
    print(f"Skipped:   {summary.skipped}")
    print(f"Failed:    {summary.failed}")
    for err in summary.errors:
        print(f"  - {err['lead_id']}: {err['error']}")
    print(f"Duration:  {summary.duration_seconds}s")

    return 1 if summary.failed else 0


if __name__ == '__main__':
    sys.exit(main())
