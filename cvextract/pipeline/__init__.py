from .context import ExtractionContext, ExtractionRequest, StepFailure
from .runner import ExtractionPipeline, render_template
from .tasks import TASKS, DocumentSource, ExtractionTask, TaskSpec, get_task

__all__ = [
    "ExtractionContext", "ExtractionRequest", "StepFailure",
    "ExtractionPipeline", "render_template",
    "TASKS", "DocumentSource", "ExtractionTask", "TaskSpec", "get_task",
]
