"""Domain records shared by the pipeline components.

Steps and models are read-only configuration owned by the database; the
executor only ever builds them from rows. Interpolation context and step
results live for one run and are never persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# llm_input_types row id for steps that attach the uploaded image.
IMAGE_AND_TEXT_INPUT_TYPE_ID = 1

ADDITIONAL_CONTEXT_KEY = "imageAdditionalContext"


class InputModality(Enum):
    """Whether a step's request carries the uploaded image."""

    TEXT_ONLY = "text-only"
    IMAGE_AND_TEXT = "image-and-text"

    @classmethod
    def from_input_type_id(cls, input_type_id: int | None) -> InputModality:
        if input_type_id == IMAGE_AND_TEXT_INPUT_TYPE_ID:
            return cls.IMAGE_AND_TEXT
        return cls.TEXT_ONLY


class StepStatus(Enum):
    """Outcome of one executed step."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Step:
    """One configured LLM invocation of a humor flavor pipeline."""

    id: int
    order_index: int
    input_modality: InputModality = InputModality.TEXT_ONLY
    model_ref: int | None = None
    temperature: float | None = None
    system_prompt_template: str | None = None
    user_prompt_template: str | None = None
    step_type_ref: int | None = None
    description: str | None = None

    @property
    def needs_image(self) -> bool:
        return self.input_modality is InputModality.IMAGE_AND_TEXT

    @property
    def output_key(self) -> str:
        """Interpolation variable that receives this step's output."""
        return f"step{self.order_index}Output"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Step:
        """Build a step from a ``humor_flavor_steps`` row.

        Args:
            row: Column mapping as returned by Supabase or the JSON catalog

        Returns:
            Step with missing optional columns left as None
        """
        temperature = row.get("llm_temperature")
        return cls(
            id=row["id"],
            order_index=row.get("order_by") or 0,
            input_modality=InputModality.from_input_type_id(row.get("llm_input_type_id")),
            model_ref=row.get("llm_model_id"),
            temperature=float(temperature) if temperature is not None else None,
            system_prompt_template=row.get("llm_system_prompt"),
            user_prompt_template=row.get("llm_user_prompt"),
            step_type_ref=row.get("humor_flavor_step_type_id"),
            description=row.get("description"),
        )


@dataclass(frozen=True)
class LLMModel:
    """An entry of the ``llm_models`` catalog."""

    id: int
    display_name: str
    provider_model_id: str
    provider_ref: int | None = None
    supports_temperature: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> LLMModel:
        supports = row.get("is_temperature_supported")
        return cls(
            id=row["id"],
            display_name=row.get("name") or "",
            provider_model_id=row.get("provider_model_id") or "",
            provider_ref=row.get("llm_provider_id"),
            # Only an explicit false disables temperature.
            supports_temperature=supports is not False,
        )


@dataclass(frozen=True)
class AccessCheck:
    """Result of checking the caller's session."""

    is_authenticated: bool
    is_admin: bool = False


@dataclass(frozen=True)
class Completion:
    """Text returned by the provider and the candidate that produced it."""

    text: str
    served_model: str


@dataclass
class StepResult:
    """Report for one executed step."""

    step_id: int
    order_index: int
    status: StepStatus
    output: str
    model_label: str
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.SUCCESS


class InterpolationContext(Mapping[str, str]):
    """Run-scoped variables available to prompt templates.

    The context starts with the caller's additional image context and grows
    by one ``step{N}Output`` entry per successful step. Entries cannot be
    replaced or removed.
    """

    def __init__(self, image_additional_context: str | None = None) -> None:
        self._values: dict[str, str] = {ADDITIONAL_CONTEXT_KEY: image_additional_context or ""}

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def record(self, key: str, value: str) -> None:
        """Add a new variable.

        Raises:
            ValueError: If the variable already exists
        """
        if key in self._values:
            raise ValueError(f"Interpolation variable '{key}' is already set")
        self._values[key] = value

    def record_step_output(self, step: Step, output: str) -> None:
        self.record(step.output_key, output)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


@dataclass
class PipelineRun:
    """Everything one pipeline run produced."""

    flavor_id: int | str
    results: list[StepResult] = field(default_factory=list)
    context: dict[str, str] = field(default_factory=dict)
    step_count: int = 0

    @property
    def halted(self) -> bool:
        """True when the run stopped at a failed step."""
        return bool(self.results) and not self.results[-1].ok

    @property
    def succeeded(self) -> bool:
        return len(self.results) == self.step_count and not self.halted
