"""FastAPI health and status endpoints."""

from fastapi import FastAPI, HTTPException

from . import __version__
from .errors import MirrorError
from .mirror import MirrorStore
from .status import OutcomeLog


def create_app(outcomes: OutcomeLog, mirror: MirrorStore) -> FastAPI:
    """Build the status app around the running service's state."""
    app = FastAPI(title="ups-sync", version=__version__)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/status")
    async def status():
        """Outcome counters and the most recent processed events."""
        return {
            "counts": outcomes.counts(),
            "recent": [o.model_dump(mode="json") for o in outcomes.recent()],
        }

    @app.get("/variants")
    def variants():
        """Variants currently mirrored in the cluster (secrets omitted)."""
        try:
            records = mirror.list_records()
        except MirrorError as e:
            raise HTTPException(503, str(e))
        return {
            "variants": [r.model_dump(exclude={"secret"}) for r in records]
        }

    return app
