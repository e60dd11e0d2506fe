# Archivo: main.py

import logging
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import StoreError
from core.sheets import connect_to_sheets, close_sheets_connection
from modules.firms import router as firms_router
from modules.meetings import router as meetings_router
from modules.pipeline import router as pipeline_router

# Configurar Logging Global
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(), # Consola
        RotatingFileHandler("sales_ops.log", maxBytes=5*1024*1024, backupCount=3) # Archivo 5MB
    ]
)

logger = logging.getLogger("SalesOps")

app = FastAPI(title="Sales Ops Dashboard", on_startup=[connect_to_sheets], on_shutdown=[close_sheets_connection])

# Registrar Routers Modulares
app.include_router(pipeline_router.router)
app.include_router(meetings_router.router)
app.include_router(firms_router.router)


# --- Envelope de errores: {"error": "..."} ---

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} ({exc.category}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return JSONResponse(status_code=422, content={"error": "; ".join(messages) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Error no controlado en {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/", tags=["Home"], include_in_schema=False)
async def root():
    """El tablero es la página principal."""
    return RedirectResponse(url="/pipeline/ui")


@app.get("/health", tags=["Home"])
async def health():
    return {"status": "ok"}

# Si quisieras levantar el servidor: uvicorn main:app --reload
