"""
Extraction task catalogue. One enum member per task, one TaskSpec each.

The enum value is the public task key and the name of the prompt row.
"""

from dataclasses import dataclass
from enum import Enum


class ExtractionTask(str, Enum):
    INDIVIDUAL_DATA = "extract-individual-data"
    FORMATIONS = "extract-formations"
    PARCOURS_PRO = "extract-parcours-professionnel"
    AUTRES_EXPERIENCES = "extract-autres-experiences"
    REALISATIONS = "extract-realisations"
    ANALYSIS = "openai-assistant"


class DocumentSource(str, Enum):
    BY_IDS = "by_ids"      # documentIds from the request
    BY_OWNER = "by_owner"  # every completed document of userId


@dataclass(frozen=True)
class TaskSpec:
    task: ExtractionTask
    source: DocumentSource
    profile_column: str
    requires_user: bool = False
    accepts_instruction: bool = False  # free-text "prompt" prepended to the template
    returns_data: bool = True          # include extractedData in the response

    @property
    def prompt_name(self) -> str:
        return self.task.value


TASKS: dict[ExtractionTask, TaskSpec] = {
    ExtractionTask.INDIVIDUAL_DATA: TaskSpec(
        task=ExtractionTask.INDIVIDUAL_DATA,
        source=DocumentSource.BY_IDS,
        profile_column="extracted_individual_data",
        requires_user=True,
    ),
    ExtractionTask.FORMATIONS: TaskSpec(
        task=ExtractionTask.FORMATIONS,
        source=DocumentSource.BY_IDS,
        profile_column="extracted_formations_data",
    ),
    ExtractionTask.PARCOURS_PRO: TaskSpec(
        task=ExtractionTask.PARCOURS_PRO,
        source=DocumentSource.BY_IDS,
        profile_column="extracted_parcours_data",
    ),
    ExtractionTask.AUTRES_EXPERIENCES: TaskSpec(
        task=ExtractionTask.AUTRES_EXPERIENCES,
        source=DocumentSource.BY_OWNER,
        profile_column="extracted_autres_experiences_data",
        requires_user=True,
    ),
    ExtractionTask.REALISATIONS: TaskSpec(
        task=ExtractionTask.REALISATIONS,
        source=DocumentSource.BY_OWNER,
        profile_column="extracted_realisations_data",
        requires_user=True,
    ),
    ExtractionTask.ANALYSIS: TaskSpec(
        task=ExtractionTask.ANALYSIS,
        source=DocumentSource.BY_IDS,
        profile_column="analysis_result",
        requires_user=True,
        accepts_instruction=True,
        returns_data=False,
    ),
}

missing = set(ExtractionTask) - set(TASKS)
if missing:
    raise RuntimeError(f"Extraction tasks without a TaskSpec: {sorted(t.value for t in missing)}")
del missing


def get_task(key: str) -> TaskSpec:
    """Look up a task by its public key. Raises ValueError for unknown keys."""
    return TASKS[ExtractionTask(key)]
