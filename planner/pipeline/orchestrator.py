"""
DecorPlanService: main pipeline orchestrator.

Chains the generation stages with status tracking and cooperative
cancellation, full asyncio support:
  Stage 1: Planning Guide + Shopping List (Gemini Flash, concurrent) [fail-loud]
  Stage 2: Close-up area selection (Gemini Flash, structured) [fail-soft]
  Stage 3: Image batch (Gemini Flash Image edit / Imagen synthesis) [fail-loud]
  Stage 4: Summaries (Gemini Flash, structured) [fail-soft]
  Post-hoc: Cinematic video (Veo) or captioned slideshow [user-triggered]
"""

import os
import time
import uuid
import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .. import metrics
from ..gemini import GeminiClient
from .cancellation import CancelToken
from .closeups import select_closeup_areas
from .content import generate_content
from .errors import (
    CANCELLED_MESSAGE,
    GenerationCancelled,
    StageResult,
    user_message,
)
from .images import generate_images
from .media import MediaStore, media_store
from .models import (
    DecorFormData,
    DecorOutput,
    PlanJobResponse,
    PlanStatus,
    SourceImage,
    TourStatus,
)
from .summaries import generate_summaries
from .tour import generate_cinematic_video, generate_slideshow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Finished jobs kept in memory before the oldest are evicted.
MAX_JOBS = int(os.getenv("MAX_JOBS", "100"))

FINISHED_STATUSES = (PlanStatus.COMPLETED, PlanStatus.FAILED, PlanStatus.CANCELLED)

TOUR_VIDEO = "video"
TOUR_SLIDESHOW = "slideshow"


class DecorPlanService:
    """
    Pipeline orchestrator and job registry.

    Usage:
        service = DecorPlanService()

        # One-shot
        output = await service.generate_plan(form, source_image, token)

        # Background job with status polling
        job = service.start_plan(form)
        service.get_status(job.job_id)
        service.cancel(job.job_id)

        # Post-hoc tour on a finished job
        service.start_tour(job.job_id, "video")
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        store: Optional[MediaStore] = None,
        max_jobs: int = MAX_JOBS,
    ):
        self.client = client or GeminiClient()
        self.store = store if store is not None else media_store
        self._jobs: dict[str, PlanJobResponse] = {}
        self._tokens: dict[str, CancelToken] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self.max_jobs = max_jobs

    # ── Status ───────────────────────────────────────────────────────────

    def get_status(self, job_id: str) -> PlanJobResponse:
        """Get the current status of a plan job."""
        return self._jobs.get(job_id, PlanJobResponse(
            job_id=job_id,
            status=PlanStatus.FAILED,
            error="Job not found",
        ))

    def has_job(self, job_id: str) -> bool:
        return job_id in self._jobs

    def _update_status(
        self,
        job_id: str,
        status: PlanStatus,
        step: str = "",
        progress: int = 0,
        output: Optional[DecorOutput] = None,
        error: Optional[str] = None,
    ):
        current = self._jobs.get(job_id) or PlanJobResponse(job_id=job_id, status=status)
        self._jobs[job_id] = current.model_copy(update={
            "status": status,
            "current_step": step,
            "progress_pct": progress,
            "output": output,
            "error": error,
        })
        logger.info(f"[{job_id}] {status.value} → {step} ({progress}%)")

    def _update_tour(
        self,
        job_id: str,
        tour_status: TourStatus,
        output: Optional[DecorOutput] = None,
        error: Optional[str] = None,
    ):
        current = self._jobs[job_id]
        update = {"tour_status": tour_status, "tour_error": error}
        if output is not None:
            update["output"] = output
        self._jobs[job_id] = current.model_copy(update=update)
        logger.info(f"[{job_id}] tour {tour_status.value}")

    def _evict_finished(self, keep: str = ""):
        """Drop the oldest finished jobs (and their tokens) past ``max_jobs``."""
        excess = len(self._jobs) - self.max_jobs
        for job_id, job in list(self._jobs.items()):
            if excess <= 0:
                break
            if (
                job_id == keep
                or job_id in self._tasks
                or job.status not in FINISHED_STATUSES
                or job.tour_status == TourStatus.GENERATING
            ):
                continue
            del self._jobs[job_id]
            self._tokens.pop(job_id, None)
            excess -= 1
            logger.info(f"[{job_id}] Evicted finished job")

    # ── Stage helpers ────────────────────────────────────────────────────

    async def _timed(self, stage: str, aw: Awaitable[StageResult[T]]) -> StageResult[T]:
        started = time.monotonic()
        try:
            result = await aw
        finally:
            metrics.record_latency(stage, (time.monotonic() - started) * 1000)
        if result.is_fallback:
            metrics.inc_counter(f"fallbacks.{stage}")
        return result

    # ── The Creation Flow ────────────────────────────────────────────────

    async def generate_plan(
        self,
        form: DecorFormData,
        source: Optional[SourceImage] = None,
        token: Optional[CancelToken] = None,
        job_id: Optional[str] = None,
    ) -> DecorOutput:
        """
        Run every stage and assemble the output.

        Raises:
            GenerationCancelled: the token fired at a stage boundary.
            GenerationError:     a fail-loud stage failed.
        """
        token = token or CancelToken()

        def progress(status: PlanStatus, step: str, pct: int):
            if job_id:
                self._update_status(job_id, status, step, pct)

        # ── Stage 1: Guide + List ────────────────────────────────
        token.raise_if_cancelled("before content")
        progress(PlanStatus.WRITING, "Writing planning guide and shopping list...", 10)
        content = (await self._timed("content", generate_content(self.client, form, token))).unwrap()
        token.raise_if_cancelled("after content")

        # ── Stage 2: Close-up areas ──────────────────────────────
        progress(PlanStatus.SELECTING_AREAS, "Choosing close-up areas...", 35)
        areas = (await self._timed(
            "closeups",
            select_closeup_areas(self.client, content.planning_guide, form, token),
        )).unwrap()

        # ── Stage 3: Images ──────────────────────────────────────
        token.raise_if_cancelled("before images")
        progress(PlanStatus.RENDERING_IMAGES, f"Rendering images for {len(areas)} close-up areas...", 45)
        images = (await self._timed(
            "images",
            generate_images(self.client, form, areas, source, token),
        )).unwrap()
        token.raise_if_cancelled("after images")

        # ── Stage 4: Summaries ───────────────────────────────────
        progress(PlanStatus.SUMMARIZING, "Summarizing...", 85)
        summaries = (await self._timed(
            "summaries",
            generate_summaries(self.client, content.planning_guide, content.shopping_list, images, token),
        )).unwrap()
        token.raise_if_cancelled("after summaries")

        return DecorOutput(
            planning_guide=content.planning_guide,
            shopping_list=content.shopping_list,
            images=tuple(images),
            planning_summary=summaries.planning_summary,
            shopping_summary=summaries.shopping_summary,
        )

    async def run_plan(
        self,
        job_id: str,
        form: DecorFormData,
        source: Optional[SourceImage] = None,
        token: Optional[CancelToken] = None,
    ) -> PlanJobResponse:
        """Run a plan as a tracked job. Never raises; the outcome is in the status."""
        token = token or self._tokens.get(job_id) or CancelToken()
        self._tokens[job_id] = token
        metrics.inc_counter("requests.plan")
        metrics.add_gauge("active_jobs", 1)
        try:
            output = await self.generate_plan(form, source, token, job_id=job_id)
            self._update_status(job_id, PlanStatus.COMPLETED, "Plan complete!", 100, output=output)
        except GenerationCancelled:
            logger.info(f"[{job_id}] Generation process aborted by user.")
            metrics.inc_counter("plans.cancelled")
            self._update_status(job_id, PlanStatus.CANCELLED, error=CANCELLED_MESSAGE)
        except Exception as e:
            logger.error(f"Plan failed for job {job_id}: {e}", exc_info=True)
            metrics.inc_counter("errors.plan")
            metrics.record_error("plan", type(e).__name__, str(e), job_id)
            self._update_status(job_id, PlanStatus.FAILED, error=user_message(e))
        finally:
            metrics.add_gauge("active_jobs", -1)
        self._evict_finished(keep=job_id)
        return self.get_status(job_id)

    def start_plan(
        self,
        form: DecorFormData,
        source: Optional[SourceImage] = None,
        job_id: Optional[str] = None,
    ) -> PlanJobResponse:
        """Fire-and-forget wrapper for run_plan. Must be called from a running loop."""
        job_id = job_id or str(uuid.uuid4())
        self._tokens[job_id] = CancelToken()
        self._update_status(job_id, PlanStatus.QUEUED, "Plan queued, writing guide...", 5)
        self._spawn(job_id, self.run_plan(job_id, form, source, self._tokens[job_id]))
        return self.get_status(job_id)

    def _spawn(self, job_id: str, coro):
        task = asyncio.create_task(coro)
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))

    def cancel(self, job_id: str) -> bool:
        """Cancel whatever is running for the job (plan or tour)."""
        token = self._tokens.get(job_id)
        if token is None:
            return False
        token.cancel()
        logger.info(f"[{job_id}] Cancellation requested")
        return True

    # ── Post-hoc: Tours ──────────────────────────────────────────────────

    def _begin_tour(self, job_id: str, kind: str) -> tuple[DecorOutput, CancelToken]:
        """Check the job can take a tour, mark it GENERATING and issue a fresh token."""
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(job_id)
        if kind not in (TOUR_VIDEO, TOUR_SLIDESHOW):
            raise ValueError(f"Unknown tour kind: {kind}")
        if job.status != PlanStatus.COMPLETED or job.output is None:
            raise ValueError("The plan has not finished generating yet.")
        if job.tour_status == TourStatus.GENERATING:
            raise ValueError("A tour is already being generated for this plan.")

        token = CancelToken()
        self._tokens[job_id] = token
        self._update_tour(job_id, TourStatus.GENERATING)
        return job.output, token

    async def _execute_tour(
        self, job_id: str, kind: str, output: DecorOutput, token: CancelToken
    ) -> PlanJobResponse:
        metrics.inc_counter(f"requests.tour_{kind}")
        started = time.monotonic()
        try:
            if kind == TOUR_VIDEO:
                tour = await generate_cinematic_video(self.client, output.images, token, self.store)
            else:
                tour = await generate_slideshow(self.client, output.images, token)
            # Replacing the tour clears whichever kind was there before.
            latest = self._jobs[job_id].output or output
            self._update_tour(job_id, TourStatus.COMPLETED, output=latest.with_tour(tour))
        except Exception as e:
            logger.error(f"Tour ({kind}) failed for job {job_id}: {e}", exc_info=True)
            metrics.inc_counter(f"errors.tour_{kind}")
            metrics.record_error(f"tour_{kind}", type(e).__name__, str(e), job_id)
            self._update_tour(job_id, TourStatus.FAILED, error=user_message(e, tour=True))
        finally:
            metrics.record_latency(f"tour_{kind}", (time.monotonic() - started) * 1000)
        return self.get_status(job_id)

    async def run_tour(self, job_id: str, kind: str) -> PlanJobResponse:
        """
        Generate a video or slideshow tour and attach it to the job's output.

        Raises KeyError for unknown jobs and ValueError when the job cannot
        take a tour right now; generation failures land in ``tour_error``.
        """
        output, token = self._begin_tour(job_id, kind)
        return await self._execute_tour(job_id, kind, output, token)

    def start_tour(self, job_id: str, kind: str) -> PlanJobResponse:
        """Fire-and-forget wrapper for run_tour."""
        output, token = self._begin_tour(job_id, kind)
        self._spawn(job_id, self._execute_tour(job_id, kind, output, token))
        return self.get_status(job_id)
