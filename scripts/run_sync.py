#!/usr/bin/env python
"""
Run Sync Script
Command-line script for running a full Jira to warehouse sync.
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jira_sync.utils.logger import setup_logging, get_logger
from jira_sync.sync.orchestrator import run_full_sync


def main():
    """Main entry point for the sync script."""
    parser = argparse.ArgumentParser(description='Sync Jira data into the warehouse')
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the full result as JSON'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Override the configured log level'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    logger = get_logger(__name__)

    try:
        result = run_full_sync()
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        print(f"\nError: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"\n{'='*50}")
        print("Sync Run Complete")
        print(f"{'='*50}")
        for task in result.tasks:
            state = 'OK' if task.success else 'FAILED'
            print(
                f"{task.task_name:<14} {state:<7} created={task.created} updated={task.updated} "
                f"errors={task.errors} ({task.duration_ms}ms) {task.message}"
            )
        print(f"{'-'*50}")
        print(f"Total Created: {result.summary.total_created}")
        print(f"Total Updated: {result.summary.total_updated}")
        print(f"Total Errors: {result.summary.total_errors}")
        print(f"Duration: {result.total_duration_ms / 1000:.2f}s")

    if not result.success:
        sys.exit(1)


if __name__ == '__main__':
    main()
