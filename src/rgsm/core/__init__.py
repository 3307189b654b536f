"""Core model: the section tree, name rules and shared constants.

This package must not import codecs/bundle/workspace/cli.
"""

from __future__ import annotations

from .section import (
    EditorMode,
    Section,
    SectionType,
    collect_top_level,
    determine_type,
    resolve_placement,
)

__all__ = [
    "EditorMode",
    "Section",
    "SectionType",
    "collect_top_level",
    "determine_type",
    "resolve_placement",
]
