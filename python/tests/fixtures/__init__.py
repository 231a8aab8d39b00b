"""
Pytest fixtures for unitsync tests.

Fixtures are organized by test category:
- watcher.py: source trees, configs, sync recorders and a fake clock
"""
