from .loop import MAX_ITERATIONS, ReasonActLoop, RunResult, RunStatus
from .progress import ProcessPhase, ProgressTracker
from .prompts import build_system_prompt

__all__ = [
    "MAX_ITERATIONS",
    "ProcessPhase",
    "ProgressTracker",
    "ReasonActLoop",
    "RunResult",
    "RunStatus",
    "build_system_prompt",
]
