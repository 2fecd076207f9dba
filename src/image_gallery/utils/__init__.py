"""Shared helpers: environment settings and logging."""
