"""Exception hierarchy for the caption pipeline.

Two families matter to callers:

- ``PipelineRequestError`` subclasses stop a request before any step runs.
  Each carries the HTTP ``status_code`` the API layer responds with.
- ``CompletionError`` subclasses fail a single step. The executor records
  them as error step results and halts the run; they never reach the caller
  as exceptions.

``CandidateUnavailableError`` is the one recoverable condition: the fallback
loop catches it and moves on to the next model candidate.
"""

from __future__ import annotations


class HumorflowError(Exception):
    """Base class for all humorflow errors."""


# ---------------------------------------------------------------------------
# Request-level errors.
# ---------------------------------------------------------------------------


class PipelineRequestError(HumorflowError):
    """A failure that rejects the whole request.

    Attributes:
        status_code: HTTP status reported to the caller.
        message: User-facing error message.
    """

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(PipelineRequestError):
    """No valid caller session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(PipelineRequestError):
    """Valid session, but the account lacks the administrator flag."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class BadRequestError(PipelineRequestError):
    """Required input is missing from the request."""

    status_code = 400


class NotFoundError(PipelineRequestError):
    """No steps are configured for the requested pipeline."""

    status_code = 404


class InvalidPipelineError(PipelineRequestError):
    """Step configuration violates the ordering invariant."""

    status_code = 422


# ---------------------------------------------------------------------------
# Collaborator errors.
# ---------------------------------------------------------------------------


class StoreError(HumorflowError):
    """A configuration store fetch failed."""


# ---------------------------------------------------------------------------
# Step-level errors.
# ---------------------------------------------------------------------------


class CompletionError(HumorflowError):
    """A completion attempt failed fatally for the current step."""


class ConfigurationMissingError(CompletionError):
    """The completion API credential is not configured."""


class CandidateUnavailableError(CompletionError):
    """The provider rate limited the request or does not know the model.

    Attributes:
        model_id: Candidate that was refused.
        status_code: HTTP status returned by the provider (429 or 404).
        body: Raw response body text.
    """

    def __init__(self, model_id: str, status_code: int, body: str) -> None:
        super().__init__(body)
        self.model_id = model_id
        self.status_code = status_code
        self.body = body


class CandidatesExhaustedError(CompletionError):
    """Every model candidate was unavailable."""

    def __init__(self, last_error: str) -> None:
        super().__init__(f"All candidate models unavailable. Last error: {last_error}")
        self.last_error = last_error
