"""Domain clients: reconciliation, dashboard extraction, batch runs."""

from .batch.router import router as batch_router

__all__ = [
    "batch_router",
]
