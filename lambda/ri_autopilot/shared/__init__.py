"""
Shared utilities and the canonical data model.

Common code used by both the recommender and the purchaser.
"""

from . import notifications


__all__ = ["notifications"]
