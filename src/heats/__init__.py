"""Heats: a launcher daemon with pluggable source, action and evaluator commands."""

__version__ = "0.1.0"
