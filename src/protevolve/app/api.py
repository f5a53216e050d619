from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from starlette.middleware.wsgi import WSGIMiddleware

from ..controller import DesignController, DesignState
from ..core import AppConfig, configure_logging, load_config_or_default, resolve_api_key
from ..fasta import design_to_fasta
from ..oracle.client import OracleClient
from ..schemas import EvolvePayload, GeneratePayload
from ..structures import StructureFetcher

logger = logging.getLogger(__name__)

# error_kind -> HTTP status. Anything else coming out of the oracle pipeline is a bad gateway.
_STATUS_BY_KIND = {
    "NoPriorDesign": 409,
    "InvalidDesignRequest": 422,
}


def build_controller(cfg: AppConfig) -> DesignController:
    oracle = OracleClient(
        base_url=cfg.oracle.base_url,
        model_name=cfg.oracle.model_name,
        api_key=resolve_api_key(cfg),
        timeout_sec=cfg.oracle.timeout_sec,
        policy=cfg.retry.policy(),
    )
    fetcher = StructureFetcher(cfg.structures.sources, timeout_sec=cfg.structures.timeout_sec)
    return DesignController(oracle=oracle, fetcher=fetcher, aliases=cfg.field_aliases)


def _state_body(state: DesignState) -> Dict[str, Any]:
    return state.model_dump(mode="json")


def _reply(state: DesignState) -> Dict[str, Any]:
    if state.error_kind:
        raise HTTPException(
            status_code=_STATUS_BY_KIND.get(state.error_kind, 502),
            detail={"error": state.error, "kind": state.error_kind},
        )
    return _state_body(state)


def create_app(config_path: Optional[Path] = None, *, controller: Optional[DesignController] = None) -> FastAPI:
    """Create a FastAPI app."""
    cfg = load_config_or_default(config_path)
    configure_logging(cfg.log_level)

    app = FastAPI(title="protevolve", version="0.1.0")
    app.state.config = cfg
    app.state.controller = controller or build_controller(cfg)

    def _controller() -> DesignController:
        return app.state.controller

    def _reject_when_busy(ctl: DesignController) -> None:
        if ctl.busy:
            raise HTTPException(
                status_code=503,
                detail="busy: a design call is already in flight",
                headers={"Retry-After": "1"},
            )

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/state")
    def state() -> Dict[str, Any]:
        return _state_body(_controller().state)

    @app.post("/generate")
    async def generate(payload: GeneratePayload) -> Dict[str, Any]:
        ctl = _controller()
        _reject_when_busy(ctl)
        return _reply(await ctl.generate(payload.description))

    @app.post("/evolve")
    async def evolve(payload: EvolvePayload) -> Dict[str, Any]:
        ctl = _controller()
        _reject_when_busy(ctl)
        return _reply(await ctl.evolve(payload.feedback))

    @app.get("/structure", response_class=PlainTextResponse)
    def structure() -> str:
        payload = _controller().state.structure
        if not payload:
            raise HTTPException(status_code=404, detail="no structure loaded")
        return payload

    @app.get("/design.fasta", response_class=PlainTextResponse)
    def design_fasta() -> str:
        result = _controller().state.result
        if result is None:
            raise HTTPException(status_code=404, detail="no design yet")
        return design_to_fasta(result)

    if cfg.enable_ui:
        # Mount Dash at "/" LAST so the API routes match first
        from .ui import create_dash_server

        _dash_app, dash_server = create_dash_server(ui_defaults=cfg.ui_defaults)
        app.mount("/", WSGIMiddleware(dash_server))

    return app


# Run with:
#   uvicorn protevolve.app.api:create_app --factory --host 0.0.0.0 --port 8000
