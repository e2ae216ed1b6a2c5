import logging

import uvicorn
from fastapi import Depends, FastAPI
from starlette.concurrency import run_in_threadpool

from catalog_files.api.deps import get_object_io
from catalog_files.app.services.bundle import get_storage_bundle
from catalog_files.common.config import get_settings
from catalog_files.common.logging import setup_logging
from catalog_files.infra.observability.metrics import metrics_app
from catalog_files.infra.storage import ObjectIO, ObjectIOError


def _probe_locations(object_io: ObjectIO, locations: list[str]) -> dict[str, str]:
    failures: dict[str, str] = {}
    for location in locations:
        try:
            object_io.ping(location)
        except ObjectIOError as exc:
            failures[location] = f"{exc.kind.value}: {exc}"
    return failures


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(
        title="Catalog Files Service",
        version="v1.0",
        description="Object storage access layer for the data catalog",
    )

    # Metrics
    if settings.ENABLE_METRICS:
        app.mount("/metrics", metrics_app)

    @app.on_event("startup")
    def on_startup() -> None:
        startup_logger = logging.getLogger("catalog_files.startup")
        startup_logger.info(
            "object storage ready. [event=startup] (schemes=%s, ready_locations=%s)",
            ",".join(get_storage_bundle().object_io().supported_schemes()),
            len(settings.READY_LOCATIONS),
        )

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        get_storage_bundle().close()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/ready")
    async def ready(object_io: ObjectIO = Depends(get_object_io)):
        locations = list(get_settings().READY_LOCATIONS)
        failures = await run_in_threadpool(_probe_locations, object_io, locations)
        if failures:
            return {"status": "not_ready", "detail": failures}
        return {"status": "ready"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("catalog_files.main:app", host="0.0.0.0", port=8000, reload=True)
