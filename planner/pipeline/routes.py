"""
FastAPI routes for the decor planning pipeline.

Plan Endpoints:
  POST /plans                              Start a plan (background job)
  GET  /plans/{id}                         Job status / finished output
  POST /plans/{id}/cancel                  Cancel the running plan or tour
  POST /plans/{id}/tour/video              Cinematic video tour (background)
  POST /plans/{id}/tour/slideshow          Captioned slideshow (background)
  GET  /plans/{id}/documents/{doc}         Download guide / list as markdown
  GET  /plans/{id}/summaries               Summaries split into text/image segments

Media / Suggestions:
  GET  /media/{media_id}                   Serve a fetched video asset
  GET  /suggestions/occasions
  GET  /suggestions/themes?occasion=...
  GET  /suggestions/color-schemes?theme=...
"""

import re
import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse, Response

from .media import media_store
from .models import (
    DecorOutput,
    PlanJobResponse,
    PlanRequest,
    SourceImage,
)
from .orchestrator import DecorPlanService, TOUR_SLIDESHOW, TOUR_VIDEO
from .summaries import render_summary
from . import suggestions

logger = logging.getLogger(__name__)

DOCUMENTS = {
    "planning-guide": ("Planning Guide", "planning_guide"),
    "shopping-list": ("Shopping List", "shopping_list"),
}


# ═════════════════════════════════════════════════════════════════════════════
# Plan Router
# ═════════════════════════════════════════════════════════════════════════════

plan_router = APIRouter(prefix="/plans", tags=["plans"])

# Singleton service instance
_service = DecorPlanService()


def _job_or_404(job_id: str) -> PlanJobResponse:
    if not _service.has_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return _service.get_status(job_id)


def _output_or_409(job_id: str) -> DecorOutput:
    job = _job_or_404(job_id)
    if job.output is None:
        raise HTTPException(status_code=409, detail="The plan has not finished generating yet.")
    return job.output


def _download_filename(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", title.lower()) + ".md"


@plan_router.post("", response_model=PlanJobResponse, status_code=202)
async def start_plan(request: PlanRequest):
    """Start generating a decor plan. Poll GET /plans/{job_id} for progress."""
    source = None
    if request.source_image:
        try:
            source = SourceImage.from_data_url(request.source_image)
        except (ValueError, IndexError) as e:
            raise HTTPException(status_code=400, detail=f"Failed to read the image file: {e}")
    return _service.start_plan(request.form, source)


@plan_router.get("/{job_id}", response_model=PlanJobResponse)
async def get_plan(job_id: str):
    """Get the current status (and, once complete, the output) of a plan."""
    return _job_or_404(job_id)


@plan_router.post("/{job_id}/cancel", response_model=PlanJobResponse)
async def cancel_plan(job_id: str):
    _job_or_404(job_id)
    _service.cancel(job_id)
    return _service.get_status(job_id)


async def _start_tour(job_id: str, kind: str) -> PlanJobResponse:
    _job_or_404(job_id)
    try:
        return _service.start_tour(job_id, kind)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@plan_router.post("/{job_id}/tour/video", response_model=PlanJobResponse, status_code=202)
async def start_video_tour(job_id: str):
    """Generate a cinematic video from the front overview image. Replaces any slideshow."""
    return await _start_tour(job_id, TOUR_VIDEO)


@plan_router.post("/{job_id}/tour/slideshow", response_model=PlanJobResponse, status_code=202)
async def start_slideshow_tour(job_id: str):
    """Caption every generated image. Replaces any video."""
    return await _start_tour(job_id, TOUR_SLIDESHOW)


@plan_router.get("/{job_id}/documents/{doc}")
async def download_document(job_id: str, doc: str):
    """Download the planning guide or shopping list as a markdown file."""
    if doc not in DOCUMENTS:
        raise HTTPException(status_code=404, detail=f"Unknown document: {doc}")
    output = _output_or_409(job_id)
    title, field = DOCUMENTS[doc]
    return PlainTextResponse(
        getattr(output, field),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{_download_filename(title)}"'},
    )


@plan_router.get("/{job_id}/summaries")
async def get_summaries(job_id: str):
    """Summaries with [IMAGE: ...] placeholders resolved against the generated images."""
    output = _output_or_409(job_id)
    return {
        "planning_summary": render_summary(output.planning_summary, output.images),
        "shopping_summary": render_summary(output.shopping_summary, output.images),
    }


# ═════════════════════════════════════════════════════════════════════════════
# Media Router
# ═════════════════════════════════════════════════════════════════════════════

media_router = APIRouter(prefix="/media", tags=["media"])


@media_router.get("/{media_id}")
async def get_media(media_id: str):
    item = media_store.get(media_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Media not found")
    data, content_type = item
    return Response(content=data, media_type=content_type)


# ═════════════════════════════════════════════════════════════════════════════
# Suggestions Router
# ═════════════════════════════════════════════════════════════════════════════

suggestions_router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@suggestions_router.get("/occasions")
async def occasion_suggestions():
    return {"occasions": suggestions.OCCASION_SUGGESTIONS}


@suggestions_router.get("/themes")
async def theme_suggestions(occasion: str = Query(..., min_length=1)):
    themes = await suggestions.suggest_themes(_service.client, occasion)
    return {"themes": themes}


@suggestions_router.get("/color-schemes")
async def color_scheme_suggestions(theme: str = Query(..., min_length=1)):
    schemes = await suggestions.suggest_color_schemes(_service.client, theme)
    return {"color_schemes": schemes}
