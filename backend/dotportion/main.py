# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DotPortion Backend - Main API
Accounts, access control and the visual workflow engine.
"""
# Load environment variables from .env file (local development)
from dotenv import load_dotenv
from pathlib import Path as _PathForEnv
_env_path = _PathForEnv(__file__).parent.parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dotportion import __version__
from dotportion.api import access, admin, auth, executions, feedback, internal, triggers, users, workflows, ws
from dotportion.core.config import Config, get_config
from dotportion.core.errors import DotPortionError, sanitize_error_for_user
from dotportion.core.logging import get_api_logger
from dotportion.db.store import DocumentStore
from dotportion.services.activity_logger import ActivityLogger
from dotportion.services.email_service import EmailService
from dotportion.services.secret_service import SecretService
from dotportion.workflow.connections import ConnectionManager
from dotportion.workflow.dispatch import HttpDispatcher, LocalDispatcher
from dotportion.workflow.emitter import UpdateEmitter
from dotportion.workflow.event_log import EventLog
from dotportion.workflow.executor import NodeExecutor
from dotportion.workflow.nodes import NodeRegistry
from dotportion.workflow.orchestrator import Orchestrator
from dotportion.workflow.trigger import WorkflowTrigger

logger = get_api_logger()


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the API. Runtime objects are created at startup and kept on app.state."""
    config = config or get_config()

    app = FastAPI(
        title="DotPortion",
        description="Accounts, access control and workflow execution",
        version=__version__,
    )
    app.state.config = config

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DotPortionError)
    async def handle_dotportion_error(request: Request, exc: DotPortionError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"path": list(e.get("loc", [])), "message": e.get("msg"), "code": e.get("type")}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "VALIDATION_FAILED", "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        activity = getattr(request.app.state, "activity", None)
        if activity is not None:
            activity.create_log(None, f"{request.method} {request.url.path}", "error", {
                "message": sanitize_error_for_user(exc, include_type=False),
                "errorType": type(exc).__name__,
            })
        return JSONResponse(
            status_code=500,
            content={"error": "INTERNAL_SERVER_ERROR", "message": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup():
        """
        Startup tasks:
        1. Open the document store
        2. Wire the workflow engine
        3. Store runtime objects in app.state for dependency injection
        """
        store = DocumentStore(Path(config.data_path))
        await store.connect()

        connections = ConnectionManager()
        event_log = EventLog(Path(config.executions_path))
        emitter = UpdateEmitter(event_log, connections)
        registry = NodeRegistry(SecretService(store))
        executor = NodeExecutor(registry, emitter, node_timeout=config.node_timeout)
        orchestrator = Orchestrator(store, executor, emitter, connections, config)
        local_dispatcher = LocalDispatcher(orchestrator)

        if config.dispatch_mode == "http":
            dispatcher = HttpDispatcher(config.orchestrator_url, timeout=config.http_timeout)
        else:
            dispatcher = local_dispatcher

        app.state.store = store
        app.state.activity = ActivityLogger(store)
        app.state.email_service = EmailService(config)
        app.state.connections = connections
        app.state.event_log = event_log
        app.state.orchestrator = orchestrator
        app.state.local_dispatcher = local_dispatcher
        app.state.trigger = WorkflowTrigger(dispatcher, config)

        logger.info(f"DotPortion started (dispatch={config.dispatch_mode}, nodes={registry.types})")

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.local_dispatcher.shutdown()
        await app.state.activity.flush()

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    app.include_router(access.router)
    app.include_router(admin.router)
    app.include_router(auth.router)
    app.include_router(feedback.router)
    app.include_router(users.router)
    app.include_router(triggers.router)
    app.include_router(workflows.router)
    app.include_router(executions.router)
    app.include_router(internal.router)
    app.include_router(ws.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.service_host, port=config.service_port)
