"""Tiny saga runner for multi-resource flows.

Steps run in order. When a step raises, compensations of the steps that already
completed run in reverse order and the original exception is re-raised.
Compensations are best-effort: their own errors are logged, never raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Action = Callable[[dict], Awaitable[Any]]
Compensation = Callable[[dict, Any], Awaitable[Any]]


@dataclass
class SagaStep:
    name: str
    action: Action
    compensate: Compensation | None = None


@dataclass
class Saga:
    name: str
    steps: list[SagaStep] = field(default_factory=list)

    def step(self, name: str, action: Action, compensate: Compensation | None = None) -> "Saga":
        self.steps.append(SagaStep(name=name, action=action, compensate=compensate))
        return self

    async def run(self, context: dict | None = None) -> dict:
        """Run all steps; each step's result is stored in the context under its name."""
        context = {} if context is None else context
        completed: list[tuple[SagaStep, Any]] = []
        for saga_step in self.steps:
            try:
                result = await saga_step.action(context)
            except Exception:
                logger.warning(f"Saga '{self.name}' failed at step '{saga_step.name}', compensating")
                await self._compensate(context, completed)
                raise
            context[saga_step.name] = result
            completed.append((saga_step, result))
        return context

    async def _compensate(self, context: dict, completed: list[tuple[SagaStep, Any]]) -> None:
        for saga_step, result in reversed(completed):
            if saga_step.compensate is None:
                continue
            try:
                await saga_step.compensate(context, result)
            except Exception:
                logger.exception(f"Compensation for step '{saga_step.name}' of saga '{self.name}' failed")
