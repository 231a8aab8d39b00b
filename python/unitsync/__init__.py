"""
unitsync - keep a generated destination file in step with a tree of source units.

The watcher regenerates the destination whenever source files change and
re-applies its content when some other program overwrites the destination.
"""

__version__ = "0.1.0"

# DO NOT import the watcher here - it pulls in watchdog, which the CLI only
# needs once the config has been validated.

__all__ = ["__version__"]
