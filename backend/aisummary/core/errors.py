"""
   Error taxonomy of the sync / enrichment pipeline.
   Integration and storage failures are translated into these types so the
   orchestrator can tell fatal (pass-level) errors from per-product ones.
"""


class SummarySyncError(Exception):
    """Base for all pipeline errors."""


class UpstreamError(SummarySyncError):
    """Catalog fetch from the Shopify Admin API failed; fatal to the pass."""


class StorageError(SummarySyncError):
    """Repository I/O failed; fatal to the single operation."""


class GenerationError(SummarySyncError):
    """Generation call failed or returned output outside the contract; recoverable per product."""


class ValidationError(SummarySyncError):
    """Inbound event is unauthenticated or malformed; rejected at ingress."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class JobStateError(SummarySyncError):
    """Illegal installation job transition (e.g. leaving a terminal state)."""
