"""Ordered, fail-fast execution of async workflow steps.

A workflow is a list of named async steps. Each step receives the previous
step's output (the first receives the run's initial value). The first step
that raises stops the run: no later step executes, and the error is handed
once to the completion handler and recorded on the outcome.

Side effects of steps that already completed are never undone. There is no
cancellation handling: asyncio.CancelledError propagates untouched, leaving
whatever the completed steps persisted in place.

Usage:
    runner = WorkflowRunner(
        "password_reset_request",
        [
            WorkflowStep("generate_token", generate),
            WorkflowStep("load_account", load),
            WorkflowStep("attach_token", attach),
            WorkflowStep("notify", notify),
        ],
    )
    outcome = await runner.run(on_complete=log_result)
    receipt = outcome.unwrap()
"""

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger()

StepFn = Callable[[Any], Awaitable[Any]]
CompletionHandler = Callable[[Exception | None, Any], Awaitable[None] | None]


@dataclass(frozen=True)
class WorkflowStep:
    """One named step of a workflow.

    Attributes:
        name: Identifier used in logs and on the outcome.
        fn: Async callable taking the previous step's output.
    """

    name: str
    fn: StepFn


@dataclass
class WorkflowOutcome:
    """Result of one workflow run.

    Attributes:
        workflow: Name of the workflow that ran.
        result: Output of the last step (None if the run failed).
        error: The first error raised, or None on success.
        failed_step: Name of the step that raised, if any.
        completed_steps: Names of the steps that finished, in order.
    """

    workflow: str
    result: Any = None
    error: Exception | None = None
    failed_step: str | None = None
    completed_steps: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True if every step completed."""
        return self.error is None

    def unwrap(self) -> Any:
        """Return the final output, or re-raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.result


class WorkflowRunner:
    """Runs a fixed sequence of steps in order, stopping at the first failure.

    Args:
        name: Workflow name for logging.
        steps: Steps to run, in order. May be reused across runs.
    """

    def __init__(self, name: str, steps: Sequence[WorkflowStep]) -> None:
        if not steps:
            raise ValueError("A workflow needs at least one step")
        self.name = name
        self.steps: tuple[WorkflowStep, ...] = tuple(steps)

    async def run(
        self,
        initial: Any = None,
        *,
        on_complete: CompletionHandler | None = None,
    ) -> WorkflowOutcome:
        """Execute the steps.

        Args:
            initial: Value passed to the first step.
            on_complete: Called exactly once with ``(error, result)``;
                ``error`` is None when every step completed. May be sync or
                async.

        Returns:
            WorkflowOutcome describing what ran and how it ended.
        """
        outcome = WorkflowOutcome(workflow=self.name)
        value = initial

        for step in self.steps:
            try:
                value = await step.fn(value)
            except Exception as exc:
                outcome.error = exc
                outcome.failed_step = step.name
                logger.info(
                    "workflow_step_failed",
                    workflow=self.name,
                    step=step.name,
                    error_type=type(exc).__name__,
                    completed_steps=list(outcome.completed_steps),
                )
                break
            outcome.completed_steps.append(step.name)
        else:
            outcome.result = value
            logger.debug("workflow_complete", workflow=self.name)

        if on_complete is not None:
            handled = on_complete(outcome.error, outcome.result)
            if inspect.isawaitable(handled):
                await handled

        return outcome
