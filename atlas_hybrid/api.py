"""
REST API server for the adaptive layout engine.

Exposes the decision and feedback loop over HTTP with JSON bodies that
map 1:1 to the in-process shapes.

Run with:
    python -m atlas_hybrid.api --state-dir ./.atlas

Requires: pip install fastapi uvicorn
"""
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Check for FastAPI
try:
    from fastapi import FastAPI, HTTPException
    from fastapi.middleware.cors import CORSMiddleware
    from pydantic import BaseModel, Field
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from . import __version__
from .config import ServiceConfig
from .errors import EngineInitError
from .intent import FEATURE_ORDER as INTENT_FIELDS
from .logging_config import configure_logging
from .service import AdaptiveLayoutService


# ============================================================================
# Pydantic Models for API
# ============================================================================

if FASTAPI_AVAILABLE:

    class DecisionRequest(BaseModel):
        """Decision request. Absent fields take the configured defaults."""
        domain: Optional[str] = Field(None, description="dashboard, blog or ecommerce")
        goal: Optional[str] = Field(None, description="browse, compare, checkout, kpi-focus, read")
        density: Optional[str] = Field(None, description="compact, medium or cozy")
        persona: Optional[str] = Field(None, description="new, returning or power")
        device: Optional[str] = Field(None, description="mobile, tablet or desktop")
        accent: Optional[str] = Field(None, description="cool, warm or neutral")
        action: Optional[int] = Field(None, description="Force a layout action (0-9)")
        use_model: bool = Field(True, description="Ask the engine for an action")

    class DecisionResponse(BaseModel):
        """Layout, composition and debug info for a decision."""
        layout: Dict[str, Any]
        composition: List[Dict[str, Any]]
        action: Optional[int]
        state: List[float]
        debugInfo: Dict[str, Any]

    class FeedbackRequest(BaseModel):
        """Feedback on a previous decision."""
        action: int = Field(..., ge=0, description="Action that was shown")
        reward: float = Field(..., ge=-1.0, le=1.0, description="Reward for the action")
        priorState: Optional[List[float]] = Field(None, description="State vector from the decision")
        context: Optional[str] = Field(None, description="Bandit context (domain)")
        nextState: Optional[List[float]] = None
        terminal: bool = False
        intent: Optional[Dict[str, Any]] = Field(
            None, description="Intent to rebuild the state from when priorState is absent"
        )

    class FeedbackResponse(BaseModel):
        recorded: bool
        step_count: int
        epsilon: float


# ============================================================================
# API Server
# ============================================================================

class AtlasAPIServer:
    """
    FastAPI-based REST server for the adaptive layout service.

    Provides endpoints for:
    - Layout decisions
    - Feedback ingestion
    - Engine stats, bandit switching and reset

    If the service cannot be constructed (numeric backend missing,
    state directory unusable) the server still starts in degraded mode
    and every engine-backed endpoint answers 503 with the reason.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        service: Optional[AdaptiveLayoutService] = None,
    ):
        if not FASTAPI_AVAILABLE:
            raise ImportError(
                "FastAPI not installed. Install with: pip install fastapi uvicorn"
            )

        self.config = config or ServiceConfig()
        self.service = service
        self.init_error: Optional[str] = None

        if self.service is None:
            try:
                self.service = AdaptiveLayoutService(self.config)
            except EngineInitError as e:
                self.init_error = str(e)
                logger.error(f"Engine unavailable, running in degraded mode: {e}")

        self.app = FastAPI(
            title="Atlas Adaptive Layout API",
            description="Adaptive layout decisions with a bandit / value-network hybrid",
            version=__version__,
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._register_routes()

    def _require_service(self) -> AdaptiveLayoutService:
        if self.service is None:
            raise HTTPException(
                status_code=503,
                detail=f"Engine unavailable: {self.init_error or 'not initialized'}",
            )
        return self.service

    def _register_routes(self):
        """Register all API routes."""

        @self.app.get("/health")
        async def health():
            """API health check."""
            return {
                "status": "ok" if self.service is not None else "degraded",
                "engine": "atlas-hybrid",
                "version": __version__,
                "engine_loaded": self.service is not None,
                "error": self.init_error,
            }

        @self.app.post("/decide", response_model=DecisionResponse)
        def decide(request: DecisionRequest):
            """Choose an action and build the layout + composition."""
            service = self._require_service()
            raw = {
                name: getattr(request, name)
                for name in INTENT_FIELDS
                if getattr(request, name) is not None
            }
            decision = service.decide(raw, override_action=request.action, use_model=request.use_model)
            return decision.to_dict()

        @self.app.post("/feedback", response_model=FeedbackResponse)
        def feedback(request: FeedbackRequest):
            """Record a reward for a previously shown action."""
            service = self._require_service()
            try:
                recorded = service.feedback(
                    action=request.action,
                    reward=request.reward,
                    prior_state=request.priorState,
                    context=request.context,
                    next_state=request.nextState,
                    terminal=request.terminal,
                    intent=request.intent,
                )
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
            return {
                "recorded": recorded,
                "step_count": service.engine.step_count,
                "epsilon": service.engine.epsilon,
            }

        @self.app.get("/stats")
        def stats():
            """Engine, registry and event statistics."""
            return self._require_service().stats()

        @self.app.post("/bandit/{algorithm}")
        def set_bandit(algorithm: str):
            """Switch the authoritative bandit algorithm."""
            service = self._require_service()
            if not service.set_bandit_algorithm(algorithm):
                raise HTTPException(status_code=400, detail=f"Unknown bandit algorithm '{algorithm}'")
            return {"active_bandit": service.engine.bandits.active_type}

        @self.app.post("/reset")
        def reset():
            """Reset learning state and the layout cache."""
            service = self._require_service()
            service.reset()
            return {"status": "reset", "step_count": service.engine.step_count}


def create_app(
    config: Optional[ServiceConfig] = None,
    service: Optional[AdaptiveLayoutService] = None,
) -> "FastAPI":
    """Create and configure the FastAPI application."""
    server = AtlasAPIServer(config=config, service=service)
    return server.app


def serve(config: ServiceConfig, host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    app = create_app(config)
    print(f"\nAtlas API Server starting on http://{host}:{port}")
    print(f"API docs: http://{host}:{port}/docs\n")
    uvicorn.run(app, host=host, port=port)


def main():
    """Run the API server from command line."""
    if not FASTAPI_AVAILABLE:
        print("FastAPI not installed. Install with:")
        print("  pip install fastapi uvicorn")
        return

    parser = argparse.ArgumentParser(description="Atlas API Server")
    parser.add_argument("--config", help="YAML/JSON config file")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--state-dir", help="Engine state directory")
    args = parser.parse_args()

    base = ServiceConfig.load(args.config) if args.config else None
    config = ServiceConfig.from_env(base)
    if args.state_dir:
        config.state_dir = args.state_dir

    configure_logging(config.log_level)
    serve(config, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
