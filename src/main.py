"""Main application: core + clients."""

from src.overuse.api.app import create_app
from src.clients import batch_router

app = create_app(
    title="Utility Overuse",
    description="Utility bill reconciliation: extract dashboard bills, match billing periods, compute overuse",
    version="0.1.0",
)

# Mount domain clients
app.include_router(batch_router)
