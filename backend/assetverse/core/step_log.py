"""Step Log — records how far a multi-step workflow got.

Invariants:
    - Steps are appended in execution order and never removed
    - annotate() copies the log onto an error's context exactly once per failure

Design Decisions:
    - Plain dataclass owned by the orchestrator: the error that escapes carries
      completed_steps + rolled_back, so the API reports partial progress instead
      of a single opaque failure
"""

from dataclasses import dataclass, field

from assetverse.core.domain_types import WorkflowStep
from assetverse.core.errors import AssetVerseError


@dataclass
class StepLog:
    """Ordered record of completed workflow steps."""
    completed: list[WorkflowStep] = field(default_factory=list)

    def mark(self, step: WorkflowStep) -> None:
        self.completed.append(step)

    @property
    def names(self) -> list[str]:
        return [s.value for s in self.completed]

    def annotate(self, error: AssetVerseError, rolled_back: bool) -> AssetVerseError:
        error.context.completed_steps = self.names
        error.context.rolled_back = rolled_back
        return error
