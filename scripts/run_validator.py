"""
Command line entry point for the Course Workload Scheduler.
Loads the persisted store, migrates it, validates a schedule and prints a report.
"""

import sys
import json
import logging
import argparse
from datetime import datetime
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workload_scheduler.services.persistence import SnapshotRepository
from workload_scheduler.services.workspace import Workspace
from workload_scheduler.services.validator import summarize
from workload_scheduler.services.reports import schedule_report
from workload_scheduler.services.transfer import export_schedule
from workload_scheduler.core.exceptions import MutationRefused
from workload_scheduler.core.logging_config import setup_logging


def main():
    """
    Validate one schedule variant of the persisted store.
    Returns 0 when the schedule has no diagnostics, 2 when it has some.
    """
    parser = argparse.ArgumentParser(
        description='Course Workload Scheduler - Check a schedule for instructor, cohort and quarter conflicts'
    )
    parser.add_argument(
        '--data-file',
        help='Snapshot file to load (defaults to WORKLOAD_SCHEDULER_DATA_FILE)'
    )
    parser.add_argument(
        '--schedule',
        help='Schedule variant to check (defaults to the current one)'
    )
    parser.add_argument(
        '--export',
        metavar='PATH',
        help='Also write the schedule as an export document to PATH'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    print("\n" + "=" * 80)
    print("COURSE WORKLOAD SCHEDULER")
    print("=" * 80)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 80)

    try:
        # Step 1: Load (and migrate) the persisted store
        print("\n[STEP 1] Loading store...")
        repository = SnapshotRepository(args.data_file)
        workspace = Workspace.open(repository)
        store = workspace.store

        name = args.schedule or store.current_schedule
        if name not in store.schedules:
            print(f"ERROR: Schedule '{name}' does not exist. Available: {', '.join(store.schedules)}")
            return 1

        print(f"\nLoaded from {repository.path}:")
        print(f"  - {len(store.schedules)} schedules")
        print(f"  - {len(store.course_catalog)} courses")
        print(f"  - {len(store.instructors)} instructors")

        # Step 2: Validate
        print(f"\n[STEP 2] Validating schedule '{name}'...")
        diagnostics = workspace.validate(name)
        summary = summarize(diagnostics)

        # Step 3: Report
        print("\n[STEP 3] Generating schedule report...")
        print("\n" + schedule_report(store, name))

        if args.export:
            with open(args.export, "w", encoding="utf-8") as f:
                json.dump(export_schedule(store, name), f, indent=2)
            print(f"\nExported '{name}' to {args.export}")

        print("\n" + "=" * 80)
        print("VALIDATION COMPLETE")
        print("=" * 80)
        print(f"Diagnostics: {summary['total']}")
        for kind, count in sorted(summary["by_kind"].items()):
            print(f"  {kind}: {count}")
        print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 80)

        return 2 if diagnostics else 0

    except KeyboardInterrupt:
        print("\n\nValidation interrupted by user.")
        return 1

    except (MutationRefused, OSError) as e:
        print(f"\n\nERROR: {type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
