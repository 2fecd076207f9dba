"""Starlette web front end."""
