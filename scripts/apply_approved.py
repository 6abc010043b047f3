"""
Apply approved submissions from the CLI, outside the API scheduler.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.scheduler.jobs import run_apply_retry


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply submissions left in 'approved' status.")
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Maximum submissions to apply (defaults to APPLY_RETRY_BATCH_SIZE).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    summary = run_apply_retry(batch_size=args.batch_size)
    if summary is None:
        return 1

    payload = {
        "attempted": summary.attempted,
        "applied": summary.applied,
        "failed": summary.failed,
    }
    print(json.dumps(payload, indent=2))
    return 0 if summary.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
