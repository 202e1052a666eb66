"""Shared utilities: result cache and time helpers."""
