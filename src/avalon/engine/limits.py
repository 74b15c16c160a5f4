# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Step limit enforcement for workflow execution.

Router routes may loop back to earlier nodes, so a run is bounded by a
maximum number of node visits.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from avalon.exceptions import MaxStepsError

DEFAULT_MAX_STEPS = 1000


@dataclass
class StepLimiter:
    """Tracks node visits during a run and enforces ``max_steps``.

    Attributes:
        max_steps: Maximum number of node visits allowed.
        current_step: Number of visits recorded so far.
        history: Ordered list of visited node ids.

    Example:
        >>> limiter = StepLimiter(max_steps=5)
        >>> limiter.start()
        >>> limiter.check_step("fetch")  # OK
        >>> limiter.record("fetch")
    """

    max_steps: int = DEFAULT_MAX_STEPS
    """Maximum number of node visits."""

    current_step: int = 0
    """Visits recorded so far."""

    history: list[str] = field(default_factory=list)
    """Ordered list of visited node ids."""

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {self.max_steps}")

    def start(self) -> None:
        """Reset the counter and history for a new run."""
        self.current_step = 0
        self.history = []

    def check_step(self, node_id: str) -> None:
        """Check the limit before visiting ``node_id``.

        Raises:
            MaxStepsError: If the limit has been reached.
        """
        if self.current_step >= self.max_steps:
            raise MaxStepsError(
                f"Workflow exceeded maximum steps ({self.max_steps}) before node '{node_id}'",
                suggestion=(
                    f"Increase max_steps or fix the router loop causing this. "
                    f"Last {min(5, len(self.history))} nodes: {self.history[-5:]}"
                ),
                steps=self.current_step,
                max_steps=self.max_steps,
                history=self.history.copy(),
                node_id=node_id,
            )

    def record(self, node_id: str) -> None:
        """Record a visit to ``node_id``."""
        self.history.append(node_id)
        self.current_step += 1
