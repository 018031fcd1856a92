"""
Sentinel: run a script when a watched file changes.

Watches filesystem paths for creation, writes, deletion, renames and
attribute changes, and hands each matching event to an external script.
"""

__version__ = "0.1.0"

PROGRAM = "Sentinel"
