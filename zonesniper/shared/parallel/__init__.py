"""Parallel execution helpers."""
