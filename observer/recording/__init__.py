"""
Recording primitives for Autoflow.

This package turns raw page interactions (clicks and committed input
changes) into ActionEvent notifications for the detector context.

The primary entry point is:

- ActionObserver: fingerprints the target element, skips password
  fields, and sends a "new-action" message per interaction.
"""

from .action_observer import ActionObserver

__all__ = [
    "ActionObserver",
]
