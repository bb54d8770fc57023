"""
deployment/api.py - REST API

Thin HTTP surface over a SwitchLinkApp: publish switch representations,
accept set requests, and expose the per-switch trigger history.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from switchlink import __version__
from switchlink.errors import UnknownSwitchError

if TYPE_CHECKING:
    from switchlink.bootstrap.app import SwitchLinkApp

logger = logging.getLogger("deployment.api")


# =============================================================================
# Request/Response Models
# =============================================================================

class SwitchSetRequest(BaseModel):
    """Request model for setting a switch."""
    on: bool


class SwitchRepresentation(BaseModel):
    """A switch as published to clients."""
    name: str
    state: bool
    information: Dict[str, Any]
    service: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str
    switch_count: int
    uptime_seconds: float


class HistoryEntry(BaseModel):
    entry_id: str
    timestamp: str
    trigger_type: str
    switch: Optional[str] = None
    old_value: Optional[bool] = None
    new_value: Optional[bool] = None
    source: str
    cascade_id: Optional[str] = None
    caused_by: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def _represent(entity) -> SwitchRepresentation:
    information, service = entity.get_representations()
    return SwitchRepresentation(
        name=entity.name,
        state=entity.current_state(),
        information=information.to_dict(),
        service=service.to_dict(),
    )


def create_fastapi_app(switchlink_app: "SwitchLinkApp") -> FastAPI:
    """
    Create the FastAPI application.

    The app's lifespan starts the SwitchLinkApp (restoring persisted state)
    and stops it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await switchlink_app.start()
        try:
            yield
        finally:
            await switchlink_app.stop()

    enable_docs = switchlink_app.config.api.enable_docs
    app = FastAPI(
        title="SwitchLink API",
        description="Dependent switch state and propagation",
        version=__version__,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        lifespan=lifespan,
    )

    def get_entity(name: str):
        try:
            return switchlink_app.context.get_switch(name)
        except UnknownSwitchError as e:
            raise HTTPException(status_code=404, detail=e.message)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        context = switchlink_app.context
        return HealthResponse(
            status=context.state.value,
            version=__version__,
            switch_count=len(context.switches),
            uptime_seconds=context.get_uptime(),
        )

    @app.get("/switches", response_model=List[SwitchRepresentation])
    async def list_switches():
        return [_represent(e) for e in switchlink_app.context.switches.values()]

    @app.get("/switches/{name}", response_model=SwitchRepresentation)
    async def get_switch(name: str):
        return _represent(get_entity(name))

    @app.put("/switches/{name}")
    async def set_switch(name: str, body: SwitchSetRequest):
        entity = get_entity(name)
        result = await entity.request_state(body.on)
        if not result.success:
            logger.error(f"Set request for {name} failed: {result.error}")
            raise HTTPException(status_code=503, detail=result.to_dict())
        return result.to_dict()

    @app.get("/switches/{name}/history", response_model=List[HistoryEntry])
    async def switch_history(name: str, limit: int = 50):
        get_entity(name)
        entries = switchlink_app.context.trigger_log.get_for_switch(name, limit=limit)
        return [HistoryEntry(**e.to_dict()) for e in entries]

    return app
