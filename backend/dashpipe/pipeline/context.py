"""
RunContext — per-run state carried through every step.

Holds the run's identity, the SharedCache that threads data between
steps, the pipeline-wide environment overlay, and the StepResult of
every step executed so far.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dashpipe.pipeline.cache import SharedCache


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single step execution."""

    step_index: int
    step_name: str
    kind: str                       # StepKind value
    medium: str                     # Medium value
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    error_kind: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "step_name": self.step_name,
            "kind": self.kind,
            "medium": self.medium,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_kind": self.error_kind,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  RunContext
# ═══════════════════════════════════════════════════════════

@dataclass
class RunContext:
    """Carries all state between steps of one pipeline run."""

    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    cache: SharedCache = field(default_factory=SharedCache)
    env: dict[str, str] = field(default_factory=dict)

    # ─── Execution tracking ────────────────────────────
    current_step_index: int = 0
    total_steps: int = 0
    step_results: list[StepResult] = field(default_factory=list)

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logging."""
        return {
            "execution_id": self.execution_id,
            "current_step_index": self.current_step_index,
            "total_steps": self.total_steps,
            "steps_executed": len(self.step_results),
        }
