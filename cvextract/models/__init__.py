"""
All database models. Imported here so Base.metadata sees them for create_all().
"""

from .base import RecordBase
from .document import Document, DocumentStatus, DocumentType
from .profile import Profile
from .prompt import Prompt, PromptResult

__all__ = [
    "RecordBase",
    "Document", "DocumentStatus", "DocumentType",
    "Profile",
    "Prompt", "PromptResult",
]
