"""
Uploaded documents. The source PDF lives in blob storage; the OCR text is
kept inline (markdown_content) and as a blob (markdown_file_path).
"""

from enum import Enum

from sqlalchemy import String, Text, BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from .base import RecordBase


class DocumentType(str, Enum):
    CV = "cv"
    LINKEDIN = "linkedin"
    INTERVIEW = "interview"
    RECOMMENDATION = "recommendation"
    OTHER = "other"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class Document(RecordBase):
    __tablename__ = "documents"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    document_type: Mapped[str] = mapped_column(
        String, nullable=False, default=DocumentType.CV.value
    )
    file_path: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DocumentStatus.PENDING.value
    )
    markdown_content: Mapped[str] = mapped_column(Text, nullable=True)
    markdown_file_path: Mapped[str] = mapped_column(String, nullable=True)
    extraction_error: Mapped[str] = mapped_column(Text, nullable=True)
