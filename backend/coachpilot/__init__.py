"""
CoachPilot AI - Fitness insight and goal recommendation engine.
"""

__version__ = "0.1.0"
