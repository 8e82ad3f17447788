"""
Save module - versioned save envelopes.
"""

from inkwell.save.manager import (
    SaveEnvelope,
    SaveFormatError,
    SaveManager,
    dumps,
    loads,
)

__all__ = [
    "SaveEnvelope",
    "SaveFormatError",
    "SaveManager",
    "dumps",
    "loads",
]
