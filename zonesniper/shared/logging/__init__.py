"""Shared logging."""
