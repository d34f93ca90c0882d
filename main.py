import logging
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from tourney.config import LOG_LEVEL
from tourney.database import create_db_and_tables
from tourney.errors import BracketError, ErrorCode

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    create_db_and_tables()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Tournament Bracket Service",
    description="Elimination brackets with captain score consensus and admin override",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(BracketError)
async def bracket_error_handler(request: Request, exc: BracketError):
    logger.warning("Bracket error on %s: %s - %s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "InvalidInput",
            "code": ErrorCode.INVALID_INPUT,
            "message": "Request body failed validation",
            "details": {"errors": [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ]}
        }
    )


HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: ("InvalidInput", ErrorCode.INVALID_INPUT),
    status.HTTP_401_UNAUTHORIZED: ("Unauthenticated", ErrorCode.UNAUTHORIZED),
    status.HTTP_403_FORBIDDEN: ("Unauthorized", ErrorCode.UNAUTHORIZED),
    status.HTTP_404_NOT_FOUND: ("NotFound", ErrorCode.NOT_FOUND),
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error, code = HTTP_ERROR_CODES.get(exc.status_code, ("HTTPError", ErrorCode.INTERNAL_ERROR))
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error,
            "code": code,
            "message": str(exc.detail)
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log_id = str(uuid.uuid4())[:8]
    logger.exception("[%s] Unhandled exception on %s", log_id, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "InternalError",
            "code": ErrorCode.INTERNAL_ERROR,
            "message": "An unexpected error occurred. Please try again later.",
            "details": {"log_id": log_id}
        }
    )


# Include routers
from tourney.routers import matches, tournaments

app.include_router(matches.router, tags=["matches"])
app.include_router(tournaments.router, tags=["tournaments"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
