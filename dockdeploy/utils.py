"""
CLI Utilities

Small helpers shared by the commands.
"""

from typing import Any, Optional


def as_text(value: Any) -> Optional[str]:
    """YAML and env values may be ints or bools; session inputs are strings."""
    return None if value is None else str(value)
