from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedesk.api.v1.activity_logs.router import router as activity_logs_router
from feedesk.api.v1.challans.router import router as challans_router
from feedesk.api.v1.fee_heads.router import router as fee_heads_router
from feedesk.api.v1.reports.router import router as reports_router
from feedesk.api.v1.students.router import router as students_router
from feedesk.core.config import settings
from feedesk.core.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Fee Billing")

    # CORS: allow the single-page frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(fee_heads_router)
    app.include_router(students_router)
    app.include_router(challans_router)
    app.include_router(reports_router)
    app.include_router(activity_logs_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
