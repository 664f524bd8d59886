"""Escalation policy models.

A policy is an ordered ladder of steps. Each step says how long to wait
after the previous level, who to notify, and on which channels. Levels are
always the 1-based position in the list, and the first step never waits.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from alert24.exceptions import EscalationValidationError, ValidationError

from .base import generate_id

logger = logging.getLogger(__name__)

NotificationChannel = Literal["email", "sms", "voice", "slack", "webhook"]
TargetType = Literal["user", "team", "schedule"]

ALL_CHANNELS: list[NotificationChannel] = ["email", "sms", "voice", "slack", "webhook"]

DEFAULT_STEP_DELAY_MINUTES = 15
DEFAULT_MAX_STEPS = 10


class EscalationTarget(BaseModel):
    """Who a step notifies: a user, a team, or whoever is on call for a schedule."""

    model_config = ConfigDict(extra="forbid")

    type: TargetType
    id: str


class EscalationStep(BaseModel):
    """One rung of the escalation ladder.

    Attributes:
        id: Unique identifier for this step.
        level: 1-based position in the policy (kept in sync by the policy).
        delay_minutes: Wait after the previous level before notifying.
        notification_channels: Channels used for this level.
        targets: Recipients for this level.
        is_final: Marks the last resort level.
        repeat_enabled: Whether this level re-notifies before escalating.
        repeat_count: Number of notifications when repeat is enabled.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("step"))
    level: int = Field(default=1, ge=1)
    delay_minutes: int = Field(default=0, ge=0)
    notification_channels: list[NotificationChannel] = Field(default_factory=lambda: ["email"])
    targets: list[EscalationTarget] = Field(default_factory=list)
    is_final: bool = False
    repeat_enabled: bool = False
    repeat_count: int = Field(default=1, ge=1)

    def validation_errors(self, is_first: bool) -> list[str]:
        """Problems that must be fixed before the policy can be saved."""
        errors: list[str] = []
        if not self.targets:
            errors.append("At least one target is required")
        if not self.notification_channels:
            errors.append("At least one notification channel is required")
        if not is_first and self.delay_minutes <= 0:
            errors.append("Escalation delay must be greater than 0 minutes")
        return errors


class RepeatConfig(BaseModel):
    """Whole-policy repeat settings.

    Attributes:
        repeat_escalation: Restart from level 1 after the last level.
        max_repeat_count: Number of extra passes; 0 means repeat forever.
    """

    model_config = ConfigDict(extra="forbid")

    repeat_escalation: bool = False
    max_repeat_count: int = Field(default=3, ge=0)

    def allows_cycle(self, cycle: int) -> bool:
        """Whether pass number `cycle` (1 = first pass) may run."""
        if cycle <= 1:
            return True
        if not self.repeat_escalation:
            return False
        return self.max_repeat_count == 0 or cycle - 1 <= self.max_repeat_count


class EscalationPolicy(BaseModel):
    """Ordered, validated list of escalation steps.

    The editing operations mutate the policy in place and keep levels
    contiguous. Call `ensure_valid()` before persisting.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("esc"))
    organization_id: str | None = None
    name: str | None = None
    steps: list[EscalationStep] = Field(default_factory=list)
    repeat: RepeatConfig = Field(default_factory=RepeatConfig)
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1)

    @model_validator(mode="after")
    def _normalize_steps(self) -> EscalationPolicy:
        """A policy always has at least one step, numbered by position."""
        if not self.steps:
            self.steps.append(EscalationStep())
        self._renumber()
        return self

    def _renumber(self) -> None:
        for index, step in enumerate(self.steps):
            step.level = index + 1
        self.steps[0].delay_minutes = 0

    def _index_of(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        raise ValidationError("step_id", f"Unknown escalation step: {step_id}")

    def get_step(self, step_id: str) -> EscalationStep:
        return self.steps[self._index_of(step_id)]

    def step_for_level(self, level: int) -> EscalationStep | None:
        if 1 <= level <= len(self.steps):
            return self.steps[level - 1]
        return None

    def add_step(self, **fields: Any) -> EscalationStep:
        """Append a new step at the next level.

        The first step gets no delay; later steps default to 15 minutes.

        Raises:
            ValidationError: If the policy already has max_steps steps.
        """
        if len(self.steps) >= self.max_steps:
            raise ValidationError("steps", f"A policy can have at most {self.max_steps} steps")
        fields.setdefault("delay_minutes", 0 if not self.steps else DEFAULT_STEP_DELAY_MINUTES)
        fields.pop("level", None)
        step = EscalationStep(level=len(self.steps) + 1, **fields)
        self.steps.append(step)
        self._renumber()
        return step

    def remove_step(self, step_id: str) -> EscalationStep:
        """Remove a step and renumber the rest.

        Raises:
            ValidationError: If this is the only step, or the id is unknown.
        """
        if len(self.steps) <= 1:
            raise ValidationError("steps", "At least one escalation step is required")
        removed = self.steps.pop(self._index_of(step_id))
        self._renumber()
        return removed

    def update_step(self, step_id: str, **updates: Any) -> EscalationStep:
        """Replace fields on a step. Identity and level cannot change."""
        index = self._index_of(step_id)
        current = self.steps[index]
        data = {**current.model_dump(), **updates, "id": current.id, "level": current.level}
        self.steps[index] = EscalationStep.model_validate(data)
        self._renumber()
        return self.steps[index]

    def duplicate_step(self, step_id: str) -> EscalationStep:
        """Clone a step's configuration onto a new step at the end."""
        if len(self.steps) >= self.max_steps:
            raise ValidationError("steps", f"A policy can have at most {self.max_steps} steps")
        source = self.get_step(step_id)
        clone = source.model_copy(
            deep=True,
            update={"id": generate_id("step"), "level": len(self.steps) + 1},
        )
        self.steps.append(clone)
        self._renumber()
        return clone

    def reorder(self, step_ids: list[str]) -> None:
        """Put the steps in the given order.

        The new first step's delay is forced to 0. A step that lands after
        the first position with no delay gets the default delay, so it is
        never left at 0 without notice; validation still runs on the result.

        Raises:
            ValidationError: If step_ids is not a permutation of the current ids.
        """
        current = {step.id: step for step in self.steps}
        if sorted(step_ids) != sorted(current):
            raise ValidationError("step_ids", "Must list every step exactly once")
        self.steps = [current[step_id] for step_id in step_ids]
        self._renumber()
        for step in self.steps[1:]:
            if step.delay_minutes <= 0:
                logger.info(
                    "Step %s moved to level %d with no delay; using %d minutes",
                    step.id,
                    step.level,
                    DEFAULT_STEP_DELAY_MINUTES,
                )
                step.delay_minutes = DEFAULT_STEP_DELAY_MINUTES

    def move_step(self, from_index: int, to_index: int) -> None:
        """Drag-and-drop form of reorder using list positions."""
        ids = [step.id for step in self.steps]
        if not (0 <= from_index < len(ids) and 0 <= to_index < len(ids)):
            raise ValidationError("index", "Step position out of range")
        ids.insert(to_index, ids.pop(from_index))
        self.reorder(ids)

    def validate_steps(self) -> dict[str, list[str]]:
        """Collect validation errors per step id.

        Returns:
            Mapping of step id to its errors; empty when the policy is valid.
        """
        errors: dict[str, list[str]] = {}
        for index, step in enumerate(self.steps):
            step_errors = step.validation_errors(is_first=index == 0)
            if step_errors:
                errors[step.id] = step_errors
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validate_steps()

    def ensure_valid(self) -> None:
        """Block persistence while any step is invalid.

        Raises:
            EscalationValidationError: With the per-step error map.
        """
        errors = self.validate_steps()
        if errors:
            raise EscalationValidationError(errors)


__all__ = [
    "ALL_CHANNELS",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_STEP_DELAY_MINUTES",
    "EscalationPolicy",
    "EscalationStep",
    "EscalationTarget",
    "NotificationChannel",
    "RepeatConfig",
    "TargetType",
]
