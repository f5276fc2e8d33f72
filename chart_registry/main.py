import logging

from fastapi import FastAPI

from chart_registry.api.registry import registry_error_handler, router as registry_router
from chart_registry.core.dependencies import get_config
from chart_registry.domain.errors import RegistryError

config = get_config()

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=config.display_name,
    version="0.1.0",
    description=config.description,
)

app.add_exception_handler(RegistryError, registry_error_handler)
app.include_router(registry_router, prefix="/api/v1", tags=["registry"])


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    """
    Allow running `python chart_registry/main.py` to start the Uvicorn
    development server.
    """
    import uvicorn

    uvicorn.run(
        "chart_registry.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
