"""Project-wide pytest configuration hooks."""

from __future__ import annotations

pytest_plugins = ("pytest_asyncio",)
