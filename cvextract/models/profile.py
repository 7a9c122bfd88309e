"""
User profiles. One row per authenticated identity, one extracted_* column per task.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import RecordBase


class Profile(RecordBase):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String, nullable=True)
    last_name: Mapped[str] = mapped_column(String, nullable=True)

    extracted_individual_data: Mapped[str] = mapped_column(Text, nullable=True)
    extracted_formations_data: Mapped[str] = mapped_column(Text, nullable=True)
    extracted_parcours_data: Mapped[str] = mapped_column(Text, nullable=True)
    extracted_autres_experiences_data: Mapped[str] = mapped_column(Text, nullable=True)
    extracted_realisations_data: Mapped[str] = mapped_column(Text, nullable=True)
    analysis_result: Mapped[str] = mapped_column(Text, nullable=True)
