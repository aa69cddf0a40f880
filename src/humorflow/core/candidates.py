"""Model candidate resolution and the fallback loop.

A step's configured model names a single provider model, which may be rate
limited or retired when the step runs. The resolver turns a step's modality
into an ordered list of provider model identifiers instead, and
:func:`attempt_candidates` walks that list until one candidate answers.

Strategies
----------
preference
    Static preference tables per modality (vision-capable identifiers for
    image-and-text steps, text identifiers otherwise). This is how free-tier
    usage on OpenRouter survives per-model rate limits.
direct
    A single candidate: the provider model configured on the step. Used for
    providers that are addressed by their own model names (e.g. Gemini).

Fallback Rules
--------------
- Candidates are tried one at a time, in order, never concurrently.
- ``CandidateUnavailableError`` (HTTP 429/404) moves on to the next candidate.
- Any other ``CompletionError`` aborts the loop immediately.
- When every candidate is unavailable, ``CandidatesExhaustedError`` carries
  the last unavailable message.

Usage Example
-------------
    >>> table = CandidateTable(vision=("vision-a", "vision-b"), text=("text-a",))
    >>> resolver = ModelCandidateResolver(table)
    >>> resolver.resolve(needs_image=True)
    ['vision-a', 'vision-b']
    >>> completion = attempt_candidates(
    ...     resolver.resolve(needs_image=False),
    ...     lambda model_id: client.complete(model_id, system, user),
    ... )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from humorflow.core.errors import (
    CandidatesExhaustedError,
    CandidateUnavailableError,
    ConfigurationMissingError,
)
from humorflow.core.models import Completion

logger = logging.getLogger(__name__)

CandidateStrategy = Literal["preference", "direct"]


@dataclass(frozen=True)
class CandidateTable:
    """Ordered model preference lists per modality.

    Attributes
    ----------
    vision : tuple[str, ...]
        Candidates for steps that attach the image, most preferred first
    text : tuple[str, ...]
        Candidates for text-only steps, most preferred first

    Raises
    ------
    ValueError
        If a list is empty or repeats an identifier
    """

    vision: tuple[str, ...]
    text: tuple[str, ...]

    def __post_init__(self) -> None:
        for name, candidates in (("vision", self.vision), ("text", self.text)):
            if not candidates:
                raise ValueError(f"{name} candidate list must not be empty")
            if len(set(candidates)) != len(candidates):
                raise ValueError(f"{name} candidate list contains duplicates: {list(candidates)}")

    def for_modality(self, needs_image: bool) -> tuple[str, ...]:
        return self.vision if needs_image else self.text


class ModelCandidateResolver:
    """Maps a step's modality to the provider models to try, in order.

    The resolver is configured once with a :class:`CandidateTable` and a
    strategy; it holds no per-request state and is safe to share across
    concurrent runs.

    Attributes
    ----------
    table : CandidateTable
        Preference table used by the "preference" strategy
    strategy : CandidateStrategy
        "preference" or "direct"
    """

    def __init__(self, table: CandidateTable, strategy: CandidateStrategy = "preference") -> None:
        if strategy not in ("preference", "direct"):
            raise ValueError(f"Unknown candidate strategy: {strategy}")
        self.table = table
        self.strategy = strategy

    def resolve(self, needs_image: bool, provider_model_id: str | None = None) -> list[str]:
        """Return the ordered candidates for one step.

        Args:
            needs_image: True when the step sends the image
            provider_model_id: The step's configured provider model
                (required by the "direct" strategy, ignored otherwise)

        Returns:
            Non-empty list of distinct model identifiers, most preferred first

        Raises:
            ConfigurationMissingError: If the "direct" strategy has no provider
                model to use
        """
        if self.strategy == "direct":
            if not provider_model_id:
                raise ConfigurationMissingError(
                    "direct candidate strategy requires a provider model id"
                )
            return [provider_model_id]
        return list(self.table.for_modality(needs_image))


def attempt_candidates(
    candidates: Sequence[str],
    call: Callable[[str], Completion],
) -> Completion:
    """Try each candidate in order until one produces a completion.

    Args:
        candidates: Model identifiers, most preferred first
        call: Performs one completion request for a model identifier

    Returns:
        The first successful completion

    Raises:
        CandidatesExhaustedError: If every candidate was unavailable
        CompletionError: Any non-recoverable failure, raised immediately
    """
    last_error = ""
    for model_id in candidates:
        try:
            return call(model_id)
        except CandidateUnavailableError as e:
            logger.warning(
                "Candidate '%s' unavailable (HTTP %s), trying next candidate.",
                model_id,
                e.status_code,
            )
            last_error = e.body
    raise CandidatesExhaustedError(last_error)
