import json
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import FileResponse
from loguru import logger
from dotenv import load_dotenv
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from models import UserStore
from schemas import Err, extract_user, parse_user_payload

# Chargement des variables d'environnement
load_dotenv()

SERVICE_NAME = "user-sync-service"
ACK_MESSAGE = "user added"
DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "static"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3080
    static_dir: Path = DEFAULT_STATIC_DIR
    strict_users: bool = False
    log_file: str = "logs.json"
    log_level: str = "INFO"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    return Settings(
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", 3080)),
        static_dir=Path(env.get("STATIC_DIR", str(DEFAULT_STATIC_DIR))),
        strict_users=_env_flag(env.get("STRICT_USERS")),
        log_file=env.get("LOG_FILE", "logs.json"),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )


def configure_logging(settings: Settings) -> None:
    # Config logging JSON (niveaux INFO, WARNING, ERROR)
    logger.remove()
    logger.add(
        sink=settings.log_file,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
        level=settings.log_level,
        serialize=True,
        rotation="1 day",
    )


# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)
USERS_STORED = Gauge(
    "users_stored",
    "Number of user records held in memory",
    ["service"]
)


# Middleware pour logger les requests avec correlation ID (observabilité)
async def log_requests(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.info(
            f"Request: {request.method} {request.url.path}",
            extra={"method": request.method, "url": str(request.url), "trace_id": trace_id}
        )

        response = await call_next(request)

        latency = time.time() - start_time
        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path
        ).observe(latency)

        logger.info(
            f"Response status: {response.status_code}",
            extra={"status": response.status_code, "latency": latency, "trace_id": trace_id}
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


def get_store(request: Request) -> UserStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


router = APIRouter()


@router.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/api/users", response_model=List[Any])
async def get_users(store: UserStore = Depends(get_store)):
    logger.info("Fetching all users")
    users = store.list()
    USERS_STORED.labels(service=SERVICE_NAME).set(len(users))
    return users


@router.post("/api/user")
async def add_user(
    request: Request,
    store: UserStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Ajoute l'utilisateur reçu dans `user`.
    En mode permissif, un champ absent stocke null au lieu d'être rejeté.
    """
    body = await request.body()
    content_type = request.headers.get("content-type", "")
    # Corps vide ou non JSON: aucun champ `user`
    if not body.strip() or "json" not in content_type:
        payload = {}
    else:
        try:
            payload = json.loads(body)
        except ValueError:
            logger.warning("Malformed JSON body on /api/user")
            ERROR_COUNT.labels(service=SERVICE_NAME, endpoint="/api/user", error_type="malformed_json").inc()
            raise HTTPException(status_code=400, detail="Malformed JSON body")

    if settings.strict_users:
        result = parse_user_payload(payload)
        if isinstance(result, Err):
            logger.warning("User payload rejected", extra={"errors": result.failure.errors})
            ERROR_COUNT.labels(service=SERVICE_NAME, endpoint="/api/user", error_type="validation_error").inc()
            raise HTTPException(status_code=422, detail=result.failure.errors)
        record = result.record
    else:
        record = extract_user(payload)
        if record is None:
            logger.warning("No user field in payload, storing empty entry")

    store.append(record)
    USERS_STORED.labels(service=SERVICE_NAME).set(len(store))
    logger.info(f"User added, {len(store)} stored")
    return ACK_MESSAGE


@router.get("/")
async def index(settings: Settings = Depends(get_settings)):
    shell = settings.static_dir / "index.html"
    if not shell.is_file():
        logger.warning(f"Application shell not found at {shell}")
        ERROR_COUNT.labels(service=SERVICE_NAME, endpoint="/", error_type="shell_missing").inc()
        raise HTTPException(status_code=404, detail="Not Found")
    return FileResponse(shell, media_type="text/html")


def create_app(store: Optional[UserStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="User Sync Service")
    app.state.store = store if store is not None else UserStore()
    app.state.settings = settings
    app.middleware("http")(log_requests)
    app.include_router(router)
    return app


settings = load_settings()
configure_logging(settings)
app = create_app(UserStore(), settings)


if __name__ == "__main__":
    logger.info(f"Starting User Sync Service on port {settings.port}")
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
