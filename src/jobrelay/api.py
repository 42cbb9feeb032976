# src/jobrelay/api.py
"""HTTP surface for the relay (FastAPI)."""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from jobrelay import service
from jobrelay.config import Settings, load_settings
from jobrelay.errors import ConfigError
from jobrelay.models import (
    DEFAULT_CHUNK,
    DEFAULT_SHEET_NAME,
    DEFAULT_TOTAL_RECORDS,
    Destination,
    SearchQuery,
    to_list,
)

logger = logging.getLogger(__name__)

load_dotenv(override=False)

app = FastAPI(title="Job Relay")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def get_settings() -> Settings:
    return load_settings()


class FetchJobsRequest(BaseModel):
    """Body of POST /api/fetch-jobs. Unknown keys are passed through to ScrapingDog."""

    model_config = ConfigDict(extra="allow")

    field: str = ""
    location: str = ""
    geoid: str = ""
    sort_by: str = ""  # "", "day", "week", "month"
    work_type: str = ""
    filter_by_company: str = ""
    job_types: Union[list[str], str, None] = None
    exp_levels: Union[list[str], str, None] = None
    sheet_id: str = ""
    sheet_name: str = DEFAULT_SHEET_NAME
    total_records: int = DEFAULT_TOTAL_RECORDS
    per_request_count: int = DEFAULT_CHUNK
    max_age_minutes: Optional[float] = None


class FetchSourcesRequest(BaseModel):
    """Body of POST /api/fetch (multi-provider)."""

    model_config = ConfigDict(populate_by_name=True)

    fetchfrom: Union[list[str], str] = Field(default_factory=list)
    title: str = ""
    field: str = ""
    location: str = ""
    workType: str = ""
    contractType: Union[list[str], str, None] = None
    experienceLevel: Union[list[str], str, None] = None
    publishedAt: str = ""
    filter_by_company: str = ""
    limit: int = 25
    sheet_id: str = ""
    sheet_names: dict[str, str] = Field(default_factory=dict)
    user_id: str = Field(default="", alias="userID")
    max_age_minutes: Optional[float] = None
    newest_first: bool = False


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "message": message})


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    # every failure uses the {success, message} envelope
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{where}: {err.get('msg', 'invalid')}" if where else str(err.get("msg", "invalid")))
    return _error(400, "invalid request body: " + "; ".join(problems))


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/api/fetch-jobs")
def fetch_jobs(req: FetchJobsRequest) -> Any:
    query = SearchQuery(
        field=req.field,
        location=req.location,
        geoid=req.geoid,
        sort_by=req.sort_by,
        work_type=req.work_type,
        filter_by_company=req.filter_by_company,
        job_types=to_list(req.job_types),
        exp_levels=to_list(req.exp_levels),
        total=req.total_records,
        chunk=req.per_request_count,
        extra=dict(req.model_extra or {}),
    )
    destination = Destination(req.sheet_id, req.sheet_name or DEFAULT_SHEET_NAME)
    try:
        return service.fetch_jobs(query, destination, get_settings(), max_age_minutes=req.max_age_minutes)
    except ConfigError as exc:
        return _error(400, str(exc))
    except Exception as exc:
        logger.exception("Error in /api/fetch-jobs")
        return _error(500, str(exc) or exc.__class__.__name__)


@app.post("/api/fetch")
def fetch_sources(req: FetchSourcesRequest) -> Any:
    query = SearchQuery(
        field=(req.title or req.field).strip(),
        location=req.location,
        sort_by=req.publishedAt,
        work_type=req.workType,
        filter_by_company=req.filter_by_company,
        job_types=to_list(req.contractType),
        exp_levels=to_list(req.experienceLevel),
        total=req.limit,
    )
    try:
        return service.fetch_sources(
            query,
            to_list(req.fetchfrom),
            req.sheet_id,
            get_settings(),
            user_id=req.user_id,
            sheet_names=req.sheet_names,
            max_age_minutes=req.max_age_minutes,
            newest_first=req.newest_first,
        )
    except ConfigError as exc:
        return _error(400, str(exc))
    except Exception as exc:
        logger.exception("Error in /api/fetch")
        return _error(500, str(exc) or exc.__class__.__name__)
