"""
Compute Investor Opportunities

Prints the ranked opportunities, or the recommendation bundle with
counterfactuals, for one investor as JSON.

Usage:
    python scripts/compute_opportunities.py --tenant org-1 --investor inv-1 [--limit 20] [--include-owned]
    python scripts/compute_opportunities.py --tenant org-1 --investor inv-1 --bundle [--min-trust 80]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import json

from config.settings import settings
from src.dealflow.models.listing import TrustPolicy
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.opportunities import compute_opportunities
from src.dealflow.services.recommendations import build_recommendation_bundle
from src.dealflow.utils.logger import setup_logging, tenant_context


def main():
    """Main entry point for the opportunities script."""
    parser = argparse.ArgumentParser(description="Rank opportunities for an investor")
    parser.add_argument('--tenant', required=True, help='Tenant (org) id')
    parser.add_argument('--investor', required=True, help='Investor id')
    parser.add_argument('--limit', type=int, default=None, help='Maximum items (1-200)')
    parser.add_argument('--include-owned', action='store_true', help='Keep listings already held')
    parser.add_argument('--bundle', action='store_true', help='Print recommended + counterfactuals instead')
    parser.add_argument('--min-trust', type=float, default=settings.trust_min_score, help='Minimum trust score')
    parser.add_argument('--require-verification', action='store_true', help='Exclude unverified listings')
    args = parser.parse_args()
    setup_logging()

    store = DataStore()

    with tenant_context(args.tenant, investor_id=args.investor):
        if args.bundle:
            policy = TrustPolicy(min_trust_score=args.min_trust, require_verification=args.require_verification)
            result = build_recommendation_bundle(args.tenant, args.investor, trust_policy=policy, store=store)
        else:
            result = compute_opportunities(
                args.tenant,
                args.investor,
                include_owned=args.include_owned,
                limit=args.limit,
                store=store,
            )

    print(json.dumps(result.to_dict(), indent=2, default=str))
    sys.exit(1 if result.errors else 0)


if __name__ == "__main__":
    main()
