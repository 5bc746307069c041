"""
FastAPI entrypoint.

Routes:
- GET/POST /api/analyze   query -> {"success": true, "data": AnalysisResponse}
- POST /api/auth/sign-up  create the local user profile
- GET /, /search, /sign-in, /sign-up  server-rendered pages (Jinja2 + ECharts)
"""

import os
import json
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .config import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from typing import Any, Dict, List, Optional

from .analyzer import analyze_query
from .auth import NotAuthenticatedError, require_user
from .charts import build_chart_options
from .db import close_client, get_db
from .schemas import AnalyzeRequest, ApiResponse, SignUpRequest
from .users import (
    MissingFieldsError,
    UserAlreadyExistsError,
    create_user,
    ensure_indexes,
    normalize_sign_up,
    to_user_out,
)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().db_enabled:
        try:
            ensure_indexes(get_db())
        except Exception as e:
            logger.warning(f"Could not ensure user indexes at startup: {e}")
    yield
    close_client()


app = FastAPI(title="SmartTech Forecast Engine", lifespan=lifespan)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, error=message).model_dump(exclude_none=True),
    )


def _success(result) -> Dict[str, Any]:
    return {"success": True, "data": result.model_dump()}


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    if request.url.path.startswith("/api/"):
        return _error(401, "Unauthorized")
    return RedirectResponse(url="/sign-in", status_code=303)


@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Analysis API
# ---------------------------------------------------------------------------

@app.get("/api/analyze")
async def analyze_get(
    q: Optional[str] = Query(None),
    filters: Optional[List[str]] = Query(None),
    limit: Optional[int] = Query(None),
    user: Optional[Dict[str, Any]] = Depends(require_user),
):
    if not q or not q.strip():
        return _error(400, 'Query parameter "q" is required')
    if limit is not None and not 1 <= limit <= 200:
        return _error(400, "limit must be between 1 and 200")

    try:
        result = await run_in_threadpool(analyze_query, q.strip(), filters, limit)
        return _success(result)
    except Exception as e:
        logger.error(f"API Analysis Error: {e}")
        return _error(500, str(e) or "Internal server error")


@app.post("/api/analyze")
async def analyze_post(
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(require_user),
):
    try:
        body = AnalyzeRequest.model_validate(await request.json())
    except ValueError as e:
        logger.info(f"Rejected analyze body: {e}")
        return _error(400, "Request body must be a JSON object with a 'query' field")

    if not body.query or not body.query.strip():
        return _error(400, "Query field is required in request body")
    if body.limit is not None and not 1 <= body.limit <= 200:
        return _error(400, "limit must be between 1 and 200")

    try:
        result = await run_in_threadpool(analyze_query, body.query.strip(), body.filters, body.limit)
        return _success(result)
    except Exception as e:
        logger.error(f"API Analysis Error: {e}")
        return _error(500, str(e) or "Internal server error")


# ---------------------------------------------------------------------------
# Sign-up API
# ---------------------------------------------------------------------------

@app.post("/api/auth/sign-up")
def sign_up(payload: SignUpRequest):
    db = None
    try:
        db = get_db()
    except Exception as e:
        logger.error(f"Database error: {e}")

    try:
        normalize_sign_up(payload)
    except MissingFieldsError:
        return JSONResponse(status_code=400, content={"message": "Missing required fields"})

    try:
        if db is None:
            raise RuntimeError("Database unavailable")
        doc = create_user(db, payload)
    except UserAlreadyExistsError:
        return JSONResponse(status_code=409, content={"message": "User already exists"})
    except Exception as e:
        logger.error(f"Sign-up failed: {e}")
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})

    return JSONResponse(
        status_code=201,
        content={"message": "User created successfully", "user": to_user_out(doc).model_dump()},
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(request, "index.html", {})


@app.get("/search", response_class=HTMLResponse)
async def search_page(
    request: Request,
    q: Optional[str] = Query(None),
    user: Optional[Dict[str, Any]] = Depends(require_user),
):
    query = (q or "").strip()
    if not query:
        return templates.TemplateResponse(request, "search.html", {"query": None})

    try:
        result = await run_in_threadpool(analyze_query, query)
    except Exception as e:
        logger.error(f"Search page analysis error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return templates.TemplateResponse(
        request,
        "search.html",
        {
            "query": query,
            "data": result,
            # "</" must not terminate the inline <script> block
            "charts": json.dumps(build_chart_options(result)).replace("</", "<\\/"),
        },
    )


@app.get("/sign-in", response_class=HTMLResponse)
async def sign_in_page(request: Request):
    return templates.TemplateResponse(
        request, "auth.html", {"mode": "sign-in", "provider_url": get_settings().auth_sign_in_url}
    )


@app.get("/sign-up", response_class=HTMLResponse)
async def sign_up_page(request: Request):
    return templates.TemplateResponse(
        request, "auth.html", {"mode": "sign-up", "provider_url": get_settings().auth_sign_up_url}
    )
