"""
Database Models

Shared declarative base. Feature models live in their feature packages
(mytracks.features.tracks.models) and register themselves on import.
"""

from mytracks.models.base import Base

__all__ = ["Base"]
