# backend/barberbook/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.exceptions import DomainException
from .routes import bookings, prometheus

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="BarberBook Booking Engine",
    description="Multi-tenant booking engine for salons and barber shops",
    version="0.1.0",
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Fallback for domain errors raised outside the routers' own handling."""
    http_exc = exc.to_http_exception()
    logger.warning(f"{request.method} {request.url.path} failed with {exc.code}: {exc.message}")
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(bookings.router)
app.include_router(prometheus.router)


@app.get("/health")
def health_check() -> dict:
    return {"status": "healthy", "environment": settings.environment}
