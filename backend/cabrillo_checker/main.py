from fastapi import FastAPI

from cabrillo_checker.api.routes import cabrillo, health
from cabrillo_checker.core.config import get_settings
from cabrillo_checker.core.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.version)

app.include_router(health.router)
app.include_router(cabrillo.router)


@app.get("/", summary="Root")
async def root() -> dict[str, str]:
    return {"app": settings.app_name, "version": settings.version}


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("cabrillo_checker.main:app", host="127.0.0.1", port=8000, reload=True)
