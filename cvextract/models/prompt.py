"""
Prompt templates and the latest result per (user, prompt).
"""

from sqlalchemy import String, Text, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import RecordBase


class Prompt(RecordBase):
    __tablename__ = "prompts"

    name: Mapped[str] = mapped_column(String, nullable=False, index=True)  # task key
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)  # contains {documents}
    system_message: Mapped[str] = mapped_column(Text, nullable=True)
    title: Mapped[str] = mapped_column(String, nullable=True)
    sub_title: Mapped[str] = mapped_column(String, nullable=True)
    button_label: Mapped[str] = mapped_column(String, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class PromptResult(RecordBase):
    __tablename__ = "prompt_result"
    __table_args__ = (UniqueConstraint("user_id", "prompt_id", name="uq_prompt_result_user_prompt"),)

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    prompt_id: Mapped[str] = mapped_column(ForeignKey("prompts.id"), nullable=False)
    result: Mapped[str] = mapped_column(Text, nullable=True)

    prompt: Mapped[Prompt] = relationship(lazy="joined")
