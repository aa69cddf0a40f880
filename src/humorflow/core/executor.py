"""Pipeline executor: runs a humor flavor's steps against one uploaded image.

Run Lifecycle
-------------
::

    Idle -> Authorizing -> Loading -> Running(step i) -> Succeeded | Halted

1. **Authorizing** - the caller's access token must resolve to a session
   (else 401) whose account has the administrator flag (else 403). Nothing
   is loaded before this check passes.
2. **Loading** - the flavor's steps are fetched and ordered by
   ``order_index``; an empty or unreadable step list is a 404. The model
   catalog is fetched once into an id lookup.
3. **Running** - each step, in order:

   a. resolve its model (unknown/absent: default label and provider model,
      no temperature)
   b. interpolate its system and user templates with the run context
   c. attach the image only for image-and-text steps
   d. resolve model candidates and walk them with the fallback loop
   e. record a success (and its ``step{N}Output`` variable) or an error

4. **Halting** - the first failed step ends the run. Its error result is the
   last entry; later steps never execute, because their prompts may depend
   on the missing output.

Request-level failures (steps 1-2) raise :class:`PipelineRequestError`.
Step failures never raise; they come back as the trailing error result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from humorflow.core.candidates import ModelCandidateResolver, attempt_candidates
from humorflow.core.completion import CompletionClient
from humorflow.core.config import HumorflowConfig
from humorflow.core.errors import (
    BadRequestError,
    CompletionError,
    ForbiddenError,
    InvalidPipelineError,
    NotFoundError,
    StoreError,
    UnauthorizedError,
)
from humorflow.core.interpolation import interpolate_prompt
from humorflow.core.models import (
    InterpolationContext,
    LLMModel,
    PipelineRun,
    Step,
    StepResult,
    StepStatus,
)
from humorflow.store.base import ConfigStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefaultModel:
    """What a step runs with when it names no known model."""

    label: str = "Unknown"
    provider_model_id: str = "gemini-2.0-flash"


@dataclass(frozen=True)
class PipelineRunRequest:
    """Inputs of one pipeline run.

    Attributes:
        flavor_id: Humor flavor whose steps to execute.
        image_base64: Base64-encoded uploaded image, if any.
        image_mime: MIME type of the uploaded image.
        image_additional_context: Free text exposed as ``${imageAdditionalContext}``.
    """

    flavor_id: int | str | None
    image_base64: str | None = None
    image_mime: str | None = None
    image_additional_context: str | None = None


class PipelineExecutor:
    """Runs pipelines end to end.

    The executor is stateless between runs: each call to :meth:`run` builds
    its own interpolation context and result list, so one instance can serve
    concurrent requests.

    Attributes:
        store: Authorization and configuration source.
        client: Completion client for the configured provider.
        resolver: Model candidate resolver.
        default_model: Fallback for steps without a known model.
    """

    def __init__(
        self,
        store: ConfigStore,
        client: CompletionClient,
        resolver: ModelCandidateResolver,
        default_model: DefaultModel | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.resolver = resolver
        self.default_model = default_model or DefaultModel()

    @classmethod
    def from_config(
        cls,
        config: HumorflowConfig,
        store: ConfigStore,
        client: CompletionClient,
    ) -> PipelineExecutor:
        resolver = ModelCandidateResolver(config.candidate_table(), config.candidate_strategy)
        default_model = DefaultModel(
            label=config.default_model_label,
            provider_model_id=config.default_provider_model_id,
        )
        return cls(store, client, resolver, default_model)

    # -- Public interface ---------------------------------------------------

    def authorize(self, access_token: str | None) -> None:
        """Require an authenticated administrator.

        Raises:
            UnauthorizedError: No session for the token.
            ForbiddenError: Session without the administrator flag.
        """
        access = self.store.authorize(access_token)
        if not access.is_authenticated:
            raise UnauthorizedError()
        if not access.is_admin:
            raise ForbiddenError()

    def load_steps(self, flavor_id: int | str) -> list[Step]:
        """Fetch a flavor's steps in execution order.

        Raises:
            NotFoundError: No steps, or the store could not be read.
            InvalidPipelineError: Two steps share an order index.
        """
        try:
            steps = self.store.fetch_steps(flavor_id)
        except StoreError as e:
            logger.warning("Could not load steps for flavor %s: %s", flavor_id, e)
            raise NotFoundError("No steps found for this flavor") from e

        if not steps:
            raise NotFoundError("No steps found for this flavor")

        steps = sorted(steps, key=lambda s: s.order_index)
        orders = [s.order_index for s in steps]
        if len(set(orders)) != len(orders):
            raise InvalidPipelineError(f"Duplicate step order in flavor {flavor_id}: {orders}")
        return steps

    def run(self, request: PipelineRunRequest, access_token: str | None) -> PipelineRun:
        """Execute every step of a flavor, halting at the first failure.

        Args:
            request: Flavor id, image and additional context.
            access_token: Caller's session token.

        Returns:
            The step results (a prefix of the steps when the run halted) and
            the final interpolation variables.

        Raises:
            PipelineRequestError: Authorization, validation or loading failed;
                no step was executed.
        """
        self.authorize(access_token)

        if request.flavor_id is None or request.flavor_id == "":
            raise BadRequestError("flavorId is required")

        steps = self.load_steps(request.flavor_id)
        models = {model.id: model for model in self.store.fetch_models()}

        logger.info("Running flavor %s (%d steps).", request.flavor_id, len(steps))

        context = InterpolationContext(request.image_additional_context)
        run = PipelineRun(flavor_id=request.flavor_id, step_count=len(steps))

        for step in steps:
            result = self.run_step(step, models.get(step.model_ref), context, request)
            run.results.append(result)
            if not result.ok:
                logger.warning(
                    "Flavor %s halted at step %d: %s",
                    request.flavor_id,
                    step.order_index,
                    result.output,
                )
                break

        run.context = context.as_dict()
        return run

    def run_step(
        self,
        step: Step,
        model: LLMModel | None,
        context: InterpolationContext,
        request: PipelineRunRequest,
    ) -> StepResult:
        """Execute one step and, on success, publish its output to the context.

        Args:
            step: Step to execute.
            model: The step's catalog model, or None if absent/unknown.
            context: Run variables; receives ``step{N}Output`` on success.
            request: Run inputs (image and MIME type).

        Returns:
            A success or error result; completion failures never propagate.
        """
        model_label = model.display_name if model else self.default_model.label
        provider_model_id = (
            model.provider_model_id if model else None
        ) or self.default_model.provider_model_id

        system_prompt = interpolate_prompt(step.system_prompt_template, context)
        user_prompt = interpolate_prompt(step.user_prompt_template, context)

        needs_image = step.needs_image
        temperature = step.temperature if model and model.supports_temperature else None

        start = time.monotonic()
        try:
            candidates = self.resolver.resolve(needs_image, provider_model_id)
            completion = attempt_candidates(
                candidates,
                lambda model_id: self.client.complete(
                    model_id,
                    system_prompt,
                    user_prompt,
                    image_base64=request.image_base64 if needs_image else None,
                    image_mime=request.image_mime if needs_image else None,
                    temperature=temperature,
                ),
            )
        except CompletionError as e:
            return StepResult(
                step_id=step.id,
                order_index=step.order_index,
                status=StepStatus.ERROR,
                output=str(e),
                model_label=model_label,
                duration_ms=_elapsed_ms(start),
            )

        duration_ms = _elapsed_ms(start)
        context.record_step_output(step, completion.text)
        logger.info(
            "Step %d succeeded via %s in %d ms.",
            step.order_index,
            completion.served_model,
            duration_ms,
        )
        return StepResult(
            step_id=step.id,
            order_index=step.order_index,
            status=StepStatus.SUCCESS,
            output=completion.text,
            model_label=f"{model_label} ({completion.served_model})",
            duration_ms=duration_ms,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
