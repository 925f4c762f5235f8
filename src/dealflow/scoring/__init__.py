"""
Scoring Module

Mandate fit, opportunity ranking and counterfactual recommendation logic.
"""
from src.dealflow.scoring.mandate_matcher import MandateMatcher, MandateMatch
from src.dealflow.scoring.opportunity_scorer import OpportunityScorer, Opportunity, ScoringContext
from src.dealflow.scoring.counterfactuals import CounterfactualEngine, RecommendationBundle, Counterfactual
from src.dealflow.scoring.portfolio import PortfolioSnapshot, build_portfolio_snapshot

__all__ = [
    "MandateMatcher",
    "MandateMatch",
    "OpportunityScorer",
    "Opportunity",
    "ScoringContext",
    "CounterfactualEngine",
    "RecommendationBundle",
    "Counterfactual",
    "PortfolioSnapshot",
    "build_portfolio_snapshot",
]
