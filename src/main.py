from uuid import uuid4

from fastapi import FastAPI, Request

from src.config import settings
from src.observability import configure_logging
from src.routers import health, orders
from src.routers.health import SERVICE_NAME

configure_logging(settings.debug_logging)

app = FastAPI(title="Workshop Mailer", version="0.1.0")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid4())
    )
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def set_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response

app.include_router(orders.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": SERVICE_NAME}
