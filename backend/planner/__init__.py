"""Cycle-based study plan scheduling service."""
