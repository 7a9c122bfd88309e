"""
Per-request extraction context and typed step failure.

Steps never mutate the context; they return a new one via evolve().
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from ..core.errors import FailureKind
from ..models.document import Document
from .tasks import TaskSpec

DEFAULT_INSTRUCTION = "Analyse ces documents et fournis un résumé détaillé."


@dataclass(frozen=True)
class ExtractionRequest:
    document_ids: Optional[list[str]] = None
    user_id: Optional[str] = None
    instruction: Optional[str] = None
    # Caller identity when auth is on. Documents of other users are invisible.
    owner_id: Optional[str] = None


@dataclass(frozen=True)
class ExtractionContext:
    task: TaskSpec
    request: ExtractionRequest
    user_id: Optional[str] = None
    document_ids: tuple[str, ...] = ()
    documents: tuple[Document, ...] = ()
    combined_content: str = ""
    prompt_id: Optional[str] = None
    system_message: str = ""
    user_prompt: str = ""
    extracted_data: Optional[str] = None
    summaries: tuple[dict, ...] = field(default_factory=tuple)

    def evolve(self, **changes) -> "ExtractionContext":
        return replace(self, **changes)


@dataclass(frozen=True)
class StepFailure:
    kind: FailureKind
    message: str

    @property
    def status_code(self) -> int:
        return self.kind.status_code


StepResult = ExtractionContext | StepFailure
