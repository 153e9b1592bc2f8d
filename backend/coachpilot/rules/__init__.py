"""
CoachPilot AI - Rule Families

Deterministic rules that turn a user snapshot into candidates:
- Insight families: training, nutrition, recovery, body composition, general
- Goal families: training, nutrition, recovery, body composition (focus-gated)
"""

from coachpilot.rules.insight_rules import evaluate_insights, INSIGHT_RULE_FAMILIES
from coachpilot.rules.goal_rules import evaluate_goal_suggestions, GOAL_RULE_FAMILIES

__all__ = [
    "evaluate_insights",
    "evaluate_goal_suggestions",
    "INSIGHT_RULE_FAMILIES",
    "GOAL_RULE_FAMILIES",
]
