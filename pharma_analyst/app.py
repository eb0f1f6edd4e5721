from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pharma_analyst.core.config import load_settings
from pharma_analyst.core.logger import LOGGER
from pharma_analyst.infrastructure import NotebookHTTPCollaborator, configure_insight_collaborator
from pharma_analyst.routes import analysis, knowledge, workspace


def create_app() -> FastAPI:
    app = FastAPI(title="Pharma Analyst API", version="0.1.0")
    settings = load_settings()

    if settings.notebook_url:
        collaborator = NotebookHTTPCollaborator(
            settings.notebook_url,
            token=settings.notebook_token,
            timeout=settings.notebook_timeout,
        )
        configure_insight_collaborator(collaborator)
        LOGGER.info("Insight collaborator configured at %s", settings.notebook_url)
    else:
        LOGGER.info("No insight collaborator configured; workspaces will end in error")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(analysis.router, prefix="/api")
    app.include_router(knowledge.router, prefix="/api")
    app.include_router(workspace.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Pharma Analyst API",
                "docs": "/docs",
                "health": "/api/analysis-types",
            }
        )

    return app


app = create_app()
