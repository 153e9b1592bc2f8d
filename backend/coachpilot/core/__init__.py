"""
CoachPilot AI - Core Module

Models, storage, ranking and the coaching engine.
"""
