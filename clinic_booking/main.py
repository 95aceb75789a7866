import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import config
from .admin_routes import router as admin_router
from .db import Database
from .errors import BookingError, Conflict, InvalidTransition, NotFound, ValidationFailed
from .expiry_worker import expiry_loop
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware
from .rabbitmq import RabbitPublisher
from .redis_client import get_redis
from .routes import router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("aio_pika").setLevel(logging.WARNING)
logging.getLogger("aiormq").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

SERVICE_NAME = "clinic-booking-service"

# most specific first
ERROR_STATUS = [
    (InvalidTransition, 400),
    (Conflict, 409),
    (NotFound, 404),
    (ValidationFailed, 400),
]


def status_for(exc: BookingError) -> int:
    for cls, status_code in ERROR_STATUS:
        if isinstance(exc, cls):
            return status_code
    return 400


def create_app(
    database: Database | None = None,
    publisher: RabbitPublisher | None = None,
    redis_client=None,
    expiry_interval_seconds: float = config.EXPIRY_SWEEP_INTERVAL_SECONDS,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database
        if db is None:
            if not config.DATABASE_URL:
                raise RuntimeError("CLINIC_DB environment variable is not set")
            db = Database(config.DATABASE_URL, echo=config.DB_ECHO)
        app.state.db = db

        pub = publisher or RabbitPublisher()
        app.state.publisher = pub
        # never crash the service if RabbitMQ is temporarily unavailable
        try:
            await pub.connect()
        except Exception as e:
            logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)

        stop_event = asyncio.Event()
        expiry_task = None
        if expiry_interval_seconds > 0:
            expiry_task = asyncio.create_task(
                expiry_loop(db, pub, stop_event, expiry_interval_seconds)
            )

        try:
            yield
        finally:
            stop_event.set()
            if expiry_task:
                await expiry_task
            await pub.close()
            await db.dispose()

    app = FastAPI(title="Clinic Booking Service", lifespan=lifespan)
    app.include_router(router, prefix="/api")
    app.include_router(admin_router, prefix="/api/admin")

    limiter = redis_client or get_redis()
    if limiter is not None:
        app.add_middleware(RateLimitMiddleware, redis_client=limiter, max_per_minute=config.RATE_LIMIT_PER_MINUTE)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        return JSONResponse(status_code=status_for(exc), content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        missing = sorted({
            str(err["loc"][-1]) for err in exc.errors() if err.get("type") == "missing"
        })
        detail = f"Missing required fields: {', '.join(missing)}" if missing else "Invalid request"
        return JSONResponse(status_code=400, content={"detail": detail, "errors": jsonable_errors(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health(request: Request):
        ok = await request.app.state.db.ping()
        body = {
            "status": "ok" if ok else "error",
            "service": SERVICE_NAME,
            "db": "connected" if ok else "not_connected",
            "events_enabled": request.app.state.publisher.enabled,
        }
        return JSONResponse(status_code=200 if ok else 503, content=body)

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]


app = create_app()
