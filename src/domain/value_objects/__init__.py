"""Domain value objects shared across the governance layer.

Value objects are immutable objects that describe domain concepts by their attributes
rather than their identity.
"""

from .runtime_mode import RuntimeMode

__all__ = [
    "RuntimeMode",
]
