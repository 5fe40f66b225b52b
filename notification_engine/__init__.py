"""Notification orchestration engine for healthcare billing events.

The package intentionally re-exports nothing; import from the layer
subpackages instead.
"""
