from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .exceptions import SecretariaException

logger = logging.getLogger(__name__)

async def secretaria_exception_handler(request: Request, exc: SecretariaException):
    """Handle domain exceptions with their structured detail"""
    logger.warning(f"{exc.__class__.__name__}: {exc.message} - Path: {request.url.path}")
    content = {"error": exc.message, "type": exc.__class__.__name__}
    if isinstance(exc.detail, dict):
        content.update({k: v for k, v in exc.detail.items() if k not in ("error", "message")})
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": "InternalError"}
    )

def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SecretariaException, secretaria_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
