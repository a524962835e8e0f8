"""
Copydesk - AI Editing Backend
=============================

FastAPI application shared by the route modules. Serves the generation
capabilities the editor consumes: selection edits, image regeneration,
streamed whole-document generation, placeholder image fill, translation and
continue-writing.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from ai_service import AIConfigurationError, AIRequestError, shutdown_ai_service
from config import config

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)

# Silence noisy third-party loggers
_noisy_loggers = [
    'httpcore',
    'httpcore.connection',
    'httpcore.http11',
    'httpx',
    'urllib3',
    'openai._base_client',
    'google_genai',
    'google.auth',
    'google.auth.transport',
]
for _logger_name in _noisy_loggers:
    logging.getLogger(_logger_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Copydesk",
    description="AI generation backend for the Copydesk rich-text editor",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Compresses responses > 1000 bytes; image data URLs are large
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.exception_handler(AIConfigurationError)
async def ai_configuration_error_handler(request: Request, exc: AIConfigurationError):
    logger.error("Provider not configured for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(AIRequestError)
async def ai_request_error_handler(request: Request, exc: AIRequestError):
    logger.error("AI request failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.on_event("startup")
async def startup_event():
    logger.info("Copydesk starting")
    logger.info("Text model: %s, image model: %s", config.GENERATION.text_model, config.GENERATION.image_model)
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; text endpoints will answer 400")
    if not config.GOOGLE_API_KEY:
        logger.warning("GOOGLE_API_KEY is not set; image endpoints will answer 400")


@app.on_event("shutdown")
async def shutdown_event():
    """Close provider clients on shutdown"""
    try:
        await shutdown_ai_service()
    except Exception as exc:
        logger.error(f"Error closing AI service: {exc}")
    logger.info("Copydesk stopped")
