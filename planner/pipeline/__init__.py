"""
Decor Planning Pipeline

Orchestration for:
  Plan:  Guide + List → Close-up areas → Image batch → Summaries
  Tours: Cinematic video (Veo) or captioned slideshow, on a finished plan
"""

from .orchestrator import DecorPlanService
from .routes import plan_router, media_router, suggestions_router
from .models import PlanStatus, TourStatus, DecorFormData, DecorOutput

__all__ = [
    "DecorPlanService",
    "plan_router",
    "media_router",
    "suggestions_router",
    "PlanStatus",
    "TourStatus",
    "DecorFormData",
    "DecorOutput",
]
