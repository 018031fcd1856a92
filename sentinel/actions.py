"""
Event categories and classification for Sentinel.

A raw event carries a bitmask of operations. Classification intersects it
with the categories the user enabled and yields them in a fixed order:
create, write, delete, rename, chmod.
"""

import enum
from typing import List


class Category(enum.IntFlag):
    """The five kinds of change Sentinel can react to."""

    CREATE = 1
    WRITE = 2
    DELETE = 4
    RENAME = 8
    CHMOD = 16

    @property
    def action_name(self) -> str:
        """Name handed to scripts, e.g. ``"create"``."""
        return self.name.lower()


NONE = Category(0)

CATEGORY_ORDER = (
    Category.CREATE,
    Category.WRITE,
    Category.DELETE,
    Category.RENAME,
    Category.CHMOD,
)

ALL = Category.CREATE | Category.WRITE | Category.DELETE | Category.RENAME | Category.CHMOD


def classify(enabled: Category, op: int) -> List[Category]:
    """
    Return the categories that are both enabled and present in an event.

    Args:
        enabled: Enabled-category bitmask.
        op: Operation bitmask of the raw event. Bits outside the five
            categories are ignored.

    Returns:
        list: Matching categories in dispatch order (may be empty).
    """
    return [category for category in CATEGORY_ORDER if enabled & op & category == category]


def describe(categories: Category) -> str:
    """Comma separated action names for logging, or ``"nothing"``."""
    names = [c.action_name for c in CATEGORY_ORDER if categories & c]
    return ", ".join(names) if names else "nothing"
