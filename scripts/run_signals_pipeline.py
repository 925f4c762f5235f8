"""
Run Market Signals Pipeline

Detects market signals for one or more tenants, stores the new ones and maps
them to investor mandates.

Usage:
    python scripts/run_signals_pipeline.py --tenant org-1 [--tenant org-2] [--summaries]
    python scripts/run_signals_pipeline.py --all-scheduled
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import json
from datetime import date

from config.settings import settings
from src.dealflow.pipelines.signals_pipeline import run_signals_pipeline
from src.dealflow.pipelines.summary_pipeline import run_summaries_pipeline
from src.dealflow.services.datastore import DataStore
from src.dealflow.utils.logger import get_logger, setup_logging, tenant_context

logger = get_logger(__name__)


def main():
    """Main entry point for the signals pipeline script."""
    parser = argparse.ArgumentParser(
        description="Detect and map market signals for tenants"
    )
    parser.add_argument(
        '--tenant',
        action='append',
        default=[],
        help='Tenant (org) id to process; repeat for several tenants'
    )
    parser.add_argument(
        '--all-scheduled',
        action='store_true',
        help='Process every tenant in SCHEDULED_TENANT_IDS'
    )
    parser.add_argument(
        '--summaries',
        action='store_true',
        help='Also compile AI market and investor summaries after the signals run'
    )
    parser.add_argument(
        '--as-of',
        type=date.fromisoformat,
        default=None,
        help='Summary date (YYYY-MM-DD, defaults to today)'
    )
    args = parser.parse_args()
    setup_logging()

    tenants = list(args.tenant)
    if args.all_scheduled:
        tenants.extend(t for t in settings.scheduled_tenants if t not in tenants)

    if not tenants:
        parser.error("no tenants given (use --tenant or --all-scheduled)")

    store = DataStore()
    exit_code = 0

    for tenant_id in tenants:
        with tenant_context(tenant_id, trigger="cli"):
            result = run_signals_pipeline(tenant_id, store=store)
            print(json.dumps(result.to_dict(), indent=2, default=str))
            if not result.success:
                exit_code = 1

            if args.summaries:
                summary = run_summaries_pipeline(tenant_id, as_of_date=args.as_of, store=store)
                print(json.dumps({"org_id": tenant_id, **summary.to_dict()}, indent=2))
                if not summary.success:
                    exit_code = 1

    logger.info("signals_script_completed", tenants=len(tenants), exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
