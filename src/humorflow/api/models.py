"""Pydantic request and response models for the humorflow API.

These models define the JSON schema for every API endpoint. FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

The admin console speaks camelCase JSON, so every field has a camelCase
alias; Python code uses the snake_case names.

Models
------
PipelineRequest
    Payload for ``POST /api/pipeline`` - which flavor to run and the
    uploaded image.
StepResultModel
    One executed step in a pipeline response.
PipelineResponse
    Body of a completed (or halted) pipeline run.
StepOverview / StepsResponse
    Step list shown by the runner before a run starts.
ErrorResponse
    Body of every request-level failure.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from humorflow.core.models import LLMModel, Step, StepResult


class PipelineRequest(BaseModel):
    """Request body for the ``POST /api/pipeline`` endpoint.

    Every field is nullable so that a missing ``flavorId`` is reported as a
    400 by the executor (after the caller has been authorized) rather than
    as a schema error.

    Attributes:
        flavor_id: Humor flavor whose steps to execute.
        image_base64: Uploaded image as base64 (no ``data:`` prefix).
        image_mime: MIME type of the uploaded image (e.g. ``"image/png"``).
        image_additional_context: Free text exposed to prompts as
            ``${imageAdditionalContext}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    flavor_id: int | str | None = Field(
        default=None,
        alias="flavorId",
        description="Humor flavor identifier.",
    )
    image_base64: str | None = Field(
        default=None,
        alias="imageBase64",
        description="Base64-encoded image data.",
    )
    image_mime: str | None = Field(
        default=None,
        alias="imageMime",
        description="MIME type of the image.",
    )
    image_additional_context: str | None = Field(
        default=None,
        alias="imageAdditionalContext",
        description="Extra context available to prompts as ${imageAdditionalContext}.",
    )


class StepResultModel(BaseModel):
    """One executed step.

    Attributes:
        step_id: Identifier of the step row.
        order_index: Position of the step in the flavor.
        status: ``"success"`` or ``"error"``.
        output: Model output, or the error message for a failed step.
        model_label: Model display name, with the serving candidate on success.
        duration_ms: Wall-clock time spent on the step.
    """

    model_config = ConfigDict(populate_by_name=True)

    step_id: int = Field(..., alias="stepId")
    order_index: int = Field(..., alias="orderIndex")
    status: Literal["success", "error"]
    output: str
    model_label: str = Field(..., alias="modelLabel")
    duration_ms: int = Field(..., alias="durationMs")

    @classmethod
    def from_result(cls, result: StepResult) -> StepResultModel:
        return cls(
            step_id=result.step_id,
            order_index=result.order_index,
            status=result.status.value,
            output=result.output,
            model_label=result.model_label,
            duration_ms=result.duration_ms,
        )


class PipelineResponse(BaseModel):
    """Response body for a pipeline run.

    ``results`` stops at the first error entry when the run halted.
    """

    results: list[StepResultModel]


class StepOverview(BaseModel):
    """A configured step, as listed by the runner before execution."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    order_index: int = Field(..., alias="orderIndex")
    input_modality: Literal["text-only", "image-and-text"] = Field(..., alias="inputModality")
    model: str
    step_type_id: int | None = Field(default=None, alias="stepTypeId")
    description: str | None = None

    @classmethod
    def from_step(cls, step: Step, model: LLMModel | None, default_label: str) -> StepOverview:
        return cls(
            id=step.id,
            order_index=step.order_index,
            input_modality=step.input_modality.value,
            model=model.display_name if model else default_label,
            step_type_id=step.step_type_ref,
            description=step.description,
        )


class StepsResponse(BaseModel):
    """Response body for ``GET /api/flavors/{flavor_id}/steps``."""

    model_config = ConfigDict(populate_by_name=True)

    flavor_id: int = Field(..., alias="flavorId")
    steps: list[StepOverview]


class ErrorResponse(BaseModel):
    """Body of every request-level failure."""

    error: str
