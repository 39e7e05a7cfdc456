"""
Per-backend field mappings: JSON -> backend fields record -> domain entity.
"""

from .common import map_page, optional, require

__all__ = ["map_page", "optional", "require"]
