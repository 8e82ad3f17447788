"""
Dialog module - branching dialogue scripts.

Provides:
- Dialogue graph records (nodes, choices, IF branches)
- Script compilation with line-accurate errors
"""

from inkwell.dialog.model import Dialogue, DialogueNode, Choice, ConditionalBranch
from inkwell.dialog.parser import (
    DialogueParser,
    ParseError,
    parse_dialogue,
    parse_condition,
    parse_effect,
)

__all__ = [
    "Dialogue",
    "DialogueNode",
    "Choice",
    "ConditionalBranch",
    "DialogueParser",
    "ParseError",
    "parse_dialogue",
    "parse_condition",
    "parse_effect",
]
