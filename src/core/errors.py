"""
Error taxonomy shared by the pipeline, the renderers and the API.

None of these errors are retried or recovered internally; they propagate to
the caller with the warehouse's own message unchanged.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class AuthenticationError(PipelineError):
    """Credential missing, unreadable, invalid or revoked."""


class QueryError(PipelineError):
    """The warehouse rejected the query (unknown table/column, bad syntax …)."""


class TransportError(PipelineError):
    """Network failure or warehouse unavailable."""


class RenderSpecError(PipelineError):
    """The render spec does not fit the rows (field unset or absent from the columns)."""
