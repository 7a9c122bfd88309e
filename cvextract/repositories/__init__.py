"""
Document store gateway: row CRUD plus blob operations.
"""

from .documents import DocumentsRepository
from .profiles import ProfilesRepository
from .prompts import PromptsRepository

__all__ = ["DocumentsRepository", "ProfilesRepository", "PromptsRepository"]
