
import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .assembly import build_upstream_call
from .capabilities import DEFAULT_OUTPUT_FORMAT, LANGUAGE_MODEL_ID, LATENCY_MAX, LATENCY_MIN, OUTPUT_FORMATS
from .config import Settings, get_settings
from .elevenlabs_client import ElevenLabsClient
from .errors import ConfigurationError, ValidationError, VoiceforgeError
from .schemas import ApiKeyStatus, AudioEnvelope, ErrorEnvelope, TTSRequest

settings = get_settings()

log = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.app_name)

# CORS: the browser form may be served from a separate dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

@app.exception_handler(VoiceforgeError)
async def voiceforge_error_handler(request: Request, exc: VoiceforgeError):
    return JSONResponse(ErrorEnvelope(error=exc.message).model_dump(), status_code=exc.status_code)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(ErrorEnvelope(error=message).model_dump(), status_code=422)

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s: %s", request.url.path, exc)
    return JSONResponse(ErrorEnvelope(error="An error occurred while processing your request").model_dump(), status_code=500)

def get_upstream(settings: Settings = Depends(get_settings)) -> ElevenLabsClient:
    return ElevenLabsClient(
        api_key="",
        base_url=settings.elevenlabs_base_url,
        timeout=settings.upstream_timeout_s,
    )

def resolve_api_key(
    x_api_key: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    # Per-request key first, then the process-wide one
    api_key = x_api_key or settings.elevenlabs_api_key
    if not api_key:
        raise ConfigurationError()
    return api_key

def authorized_upstream(
    api_key: str = Depends(resolve_api_key),
    upstream: ElevenLabsClient = Depends(get_upstream),
) -> ElevenLabsClient:
    return upstream.with_api_key(api_key)

@app.get("/", response_class=PlainTextResponse)
async def root():
    return "ok"

@app.get("/health")
async def health():
    return {"status": "ok"}

@app.get("/config.json")
async def config(request: Request, settings: Settings = Depends(get_settings)):
    # Derive the proxy URL from current request host/scheme
    scheme = request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.url.netloc
    return JSONResponse({
        "backend_http": f"{scheme}://{host}",
        "output_formats": list(OUTPUT_FORMATS),
        "default_output_format": DEFAULT_OUTPUT_FORMAT,
        "latency_range": [LATENCY_MIN, LATENCY_MAX],
        "default_model_id": settings.elevenlabs_model_id,
        "language_model_id": LANGUAGE_MODEL_ID,
    })

api = APIRouter(prefix="/api")

@api.get("/check-api-key", response_model=ApiKeyStatus)
async def check_api_key(settings: Settings = Depends(get_settings)):
    return ApiKeyStatus(isSet=bool(settings.elevenlabs_api_key))

@api.get("/get-models")
async def get_models(upstream: ElevenLabsClient = Depends(authorized_upstream)):
    return await upstream.list_models()

@api.get("/get-voices")
async def get_voices(upstream: ElevenLabsClient = Depends(authorized_upstream)):
    return await upstream.list_voices()

@api.get("/get-voice-settings")
async def get_voice_settings(
    voiceId: Optional[str] = None,
    upstream: ElevenLabsClient = Depends(authorized_upstream),
):
    if not voiceId:
        raise ValidationError("Voice ID is required")
    return await upstream.get_voice_settings(voiceId)

@api.post("/text-to-speech", response_model=AudioEnvelope, response_model_exclude_none=True)
async def text_to_speech(req: TTSRequest, upstream: ElevenLabsClient = Depends(authorized_upstream)):
    call = build_upstream_call(req)
    log.info("Synthesis requested: model=%s voice=%s chars=%d", req.model_id, req.voice_id, len(req.text))
    audio, request_id = await upstream.synthesize(call)
    return AudioEnvelope(audio=audio, request_id=request_id)

app.include_router(api)

def run() -> None:
    import uvicorn
    uvicorn.run("voiceforge.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())

if __name__ == "__main__":
    run()
