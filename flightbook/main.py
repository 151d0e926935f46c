from fastapi import Depends, FastAPI, Request, Response
from flightbook.config import settings
import importlib
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from flightbook.exception_handlers import register_exception_handlers
from flightbook.logging_setup import setup_logging, TRACE_ID_CTX
import uuid
import sentry_sdk
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware
from flightbook.metrics import update_queue_depth
from flightbook.redis_client import get_redis
from redis.asyncio import Redis


app = FastAPI(title=settings.APP_NAME)

# initialize logging and Sentry
setup_logging(settings.LOG_LEVEL, debug=settings.DEBUG)
if settings.SENTRY_DSN:
    sentry_sdk.init(dsn=settings.SENTRY_DSN)
    app.add_middleware(SentryAsgiMiddleware)

register_exception_handlers(app)


@app.middleware("http")
async def add_trace_id(request: Request, call_next):
    trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
    TRACE_ID_CTX.set(trace_id)
    response = await call_next(request)
    response.headers["X-Trace-Id"] = trace_id
    return response

# List of module names to include as routers
MODULES = [
    "auth",
    "users",
    "flights",
    "bookings",
    "admin",
]


for mod in MODULES:
    pkg = importlib.import_module(f"flightbook.modules.{mod}.router")
    app.include_router(pkg.router, prefix=f"/{mod}")


@app.get("/")
async def root():
    return {"app": settings.APP_NAME, "status": "ok"}


@app.get("/metrics")
async def metrics(redis: Redis = Depends(get_redis)):
    # update dynamic gauges before scraping
    await update_queue_depth(redis)
    content = generate_latest()
    return Response(content=content, media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready(redis: Redis = Depends(get_redis)):
    # simple readiness: check redis
    try:
        await redis.ping()
    except Exception:
        return Response(status_code=503, content="redis unavailable")
    return {"status": "ready"}
