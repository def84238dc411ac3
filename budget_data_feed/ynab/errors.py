from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for conditions that end the feed."""

    kind = "sync_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class BootstrapFailed(SyncError):
    """Budget id or API token rejected while resolving the budget."""

    kind = "bootstrap_failed"


class FetchUnavailable(SyncError):
    kind = "fetch_unavailable"


class WriteFailed(SyncError):
    kind = "write_failed"
