import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from courtside import config
from courtside.database import create_db_engine, init_db
from courtside.routes import brackets, courts, runtime, teams


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """Build the API. The process entry point owns the engine and its lifetime."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Courtside Badminton Tournament API")
    app.state.engine = engine if engine is not None else create_db_engine()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(teams.router, prefix="/api", tags=["teams"])
    app.include_router(brackets.router, prefix="/api", tags=["brackets"])
    # Runtime (start, live score, result + advancement)
    app.include_router(runtime.router, prefix="/api", tags=["runtime"])
    app.include_router(courts.router, prefix="/api", tags=["courts"])

    @app.on_event("startup")
    def on_startup():
        init_db(app.state.engine)

    @app.get("/api/health")
    def health_check():
        return {"app_name": "Courtside Badminton Tournament API", "status": "healthy"}

    return app


app = create_app()
