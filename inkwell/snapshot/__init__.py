"""
Snapshot module - renderer-ready views of the game.

Provides:
- Snapshot records
- build_snapshot(): state + registry -> Snapshot
- Localization (@key lookup, {variable} interpolation)
"""

from inkwell.snapshot.localization import resolve_text, create_resolver
from inkwell.snapshot.models import Snapshot
from inkwell.snapshot.builder import build_snapshot

__all__ = [
    "Snapshot",
    "build_snapshot",
    "resolve_text",
    "create_resolver",
]
