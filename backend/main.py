import logging
from pathlib import Path
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

BACKEND_DIR = Path(__file__).resolve().parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from config import load_settings
from errors import LorelineError
from logging_config import setup_logging
from routers import books, characters, health, projects, schema, world
from services.propagation_service import PropagationService
from storage.sql_store import SQLStore

settings = load_settings()
setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

settings.data_dir.mkdir(parents=True, exist_ok=True)
store = SQLStore(settings.database_url)
propagation_service = PropagationService(store, settings.lock_dir, settings.lock_timeout_s)

app = FastAPI(title='Loreline Story Bible API')
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


@app.exception_handler(LorelineError)
def handle_app_error(_request: Request, exc: LorelineError):
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return _error(exc.status_code, exc.code, exc.message)


@app.exception_handler(HTTPException)
def handle_http_error(_request: Request, exc: HTTPException):
    code = {400: 'INVALID_REQUEST', 404: 'NOT_FOUND', 409: 'CONFLICT'}.get(exc.status_code, 'ERROR')
    return _error(exc.status_code, code, str(exc.detail))


@app.exception_handler(RequestValidationError)
def handle_validation_error(_request: Request, exc: RequestValidationError):
    return _error(422, 'VALIDATION_ERROR', str(exc.errors()))


@app.exception_handler(Exception)
def handle_unexpected(_request: Request, exc: Exception):
    logger.exception("Unhandled error")
    return _error(500, 'INTERNAL_ERROR', str(exc))


app.include_router(health.router)
app.include_router(schema.router)
app.include_router(projects.router)
app.include_router(books.router)
app.include_router(characters.router)
app.include_router(world.router)
