# voice_relay/main.py
"""
App FastAPI: CORS, lifespan (arma servicios), routers, handlers de error + middleware de trazas.
"""
import logging, time

# ⬇️ Cargar .env ANTES de importar config/routers
from dotenv import load_dotenv, find_dotenv
load_dotenv(find_dotenv(usecwd=True), override=True)

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.deps import build_services
from .core.errors import RelayError
from .models.speech import HealthOut
from .routes import speech
from .telemetry.logging import setup_logging
from .telemetry.otel import setup_otel

setup_logging()
http_logger = logging.getLogger("voice_relay.http")
error_logger = logging.getLogger("voice_relay.errors")

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_otel()
    app.state.settings = settings
    for name, service in build_services(settings).items():
        setattr(app.state, name, service)
    http_logger.info(
        f"API de voz lista en el puerto {settings.PORT} "
        f"(tts={settings.tts_enabled} ajusteTexto={settings.rewrite_enabled} "
        f"stt={settings.stt_enabled} storage={settings.storage_enabled})"
    )
    yield

app = FastAPI(title="Voice Relay API", version="0.1.0", lifespan=lifespan)

# ---------------- CORS ----------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------- Middleware de trazas ----------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        dur = round(time.time() - start, 4)
        http_logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {dur}s")
        return response
    except Exception as e:
        dur = round(time.time() - start, 4)
        http_logger.exception(f"{request.method} {request.url.path} EXC after {dur}s: {e}")
        raise

# ---------------- Errores -> {"error": ...} ----------------
@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    status = exc.http_status()
    if status >= 500:
        error_logger.error(f"{request.url.path} -> {status}: {exc.message}")
    return JSONResponse(status_code=status, content={"error": exc.message})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    error_logger.exception(f"{request.url.path} -> 500: {exc}")
    return JSONResponse(status_code=500, content={"error": "Error al generar o guardar audio"})

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Petición inválida")
    return JSONResponse(status_code=400, content={"error": f"{loc}: {msg}" if loc else msg})

# ---------------- Healthcheck ----------------
@app.get("/health", response_model=HealthOut, tags=["misc"])
async def health(request: Request):
    pipeline = request.app.state.tts_pipeline
    return HealthOut(
        status="ok",
        tts=pipeline.synthesizer.enabled and pipeline.store.enabled,
        ajusteTexto=pipeline.normalizer.enabled,
        stt=request.app.state.transcriber.enabled,
        storage=pipeline.store.enabled,
    )

# ---------------- Routers ----------------
app.include_router(speech.router, tags=["voz"])


def run() -> None:
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
