"""
Pydantic models and enums for the decor planning pipeline.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..gemini import parse_data_url


# ── Form Enums ───────────────────────────────────────────────────────────────

class SpaceType(str, Enum):
    LIVING_ROOM = "Living Room"
    BACKYARD_PATIO = "Backyard Patio"
    BANQUET_HALL = "Banquet Hall"
    ROOFTOP_TERRACE = "Rooftop Terrace"
    BEACHFRONT = "Beachfront"
    GARDEN = "Garden"
    INDOOR_GENERIC = "Generic Indoor Space"
    OUTDOOR_GENERIC = "Generic Outdoor Space"


class DecorElements(str, Enum):
    TEMPORARY = "Temporary"
    PERMANENT = "Permanent"
    BOTH = "Both"


class FurnitureOption(str, Enum):
    EXISTING = "Use Existing"
    RENT = "Open to Rent"


class DiningSetting(str, Enum):
    BUFFET = "Buffet"
    SHARED = "Shared Tables"
    SMALL = "Multiple Small Tables"


# ── Form Data ────────────────────────────────────────────────────────────────

class DecorFormData(BaseModel):
    """Event parameters for one generation request. Immutable."""

    model_config = ConfigDict(frozen=True)

    space_type: SpaceType = SpaceType.BACKYARD_PATIO
    occasion: str = "Birthday Party"
    theme: str = "Boho Chic"
    guests: int = 25
    area: int = Field(500, description="Venue area in sq ft")
    budget: int = Field(1000, description="Budget in USD")
    time_to_plan: int = Field(14, description="Planning time in days")
    color_scheme: str = "Pastel Pinks, Golds, and Cream"
    decor_elements: DecorElements = DecorElements.TEMPORARY
    furniture: FurnitureOption = FurnitureOption.EXISTING
    dining_setting: DiningSetting = DiningSetting.SHARED
    activity_corner: bool = True
    eco_friendly: bool = False
    photobooth: bool = False
    # Nominally 1-5; out-of-range values fall back to a default phrase.
    decor_intensity: int = 3


class SourceImage(BaseModel):
    """An uploaded venue photo, base64-encoded."""

    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, data_url: str) -> "SourceImage":
        data, mime = parse_data_url(data_url, default_mime="image/jpeg")
        return cls(data=data, mime_type=mime)


# ── Generated Assets ─────────────────────────────────────────────────────────

class GeneratedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str  # data:<mime>;base64,<payload>


class SlideshowFrame(GeneratedImage):
    caption: str


# ── Tour Variant ─────────────────────────────────────────────────────────────

class NoTour(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class VideoTour(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["video"] = "video"
    url: str


class SlideshowTour(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["slideshow"] = "slideshow"
    frames: tuple[SlideshowFrame, ...]


Tour = Annotated[Union[NoTour, VideoTour, SlideshowTour], Field(discriminator="kind")]


# ── Output ───────────────────────────────────────────────────────────────────

class DecorOutput(BaseModel):
    """
    Aggregate result of one plan.

    Video and slideshow share the single ``tour`` slot, so applying one
    always replaces the other.
    """

    model_config = ConfigDict(frozen=True)

    planning_guide: str
    shopping_list: str
    images: tuple[GeneratedImage, ...]
    planning_summary: str
    shopping_summary: str
    tour: Tour = Field(default_factory=NoTour)

    @property
    def video_url(self) -> Optional[str]:
        return self.tour.url if isinstance(self.tour, VideoTour) else None

    @property
    def slideshow(self) -> Optional[tuple[SlideshowFrame, ...]]:
        return self.tour.frames if isinstance(self.tour, SlideshowTour) else None

    def with_tour(self, tour: Union[NoTour, VideoTour, SlideshowTour]) -> "DecorOutput":
        return self.model_copy(update={"tour": tour})

    def image_by_title(self, title: str) -> Optional[GeneratedImage]:
        for image in self.images:
            if image.title == title:
                return image
        return None


# ── Job Status ───────────────────────────────────────────────────────────────

class PlanStatus(str, Enum):
    QUEUED = "QUEUED"
    WRITING = "WRITING"
    SELECTING_AREAS = "SELECTING_AREAS"
    RENDERING_IMAGES = "RENDERING_IMAGES"
    SUMMARIZING = "SUMMARIZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TourStatus(str, Enum):
    IDLE = "IDLE"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PlanJobResponse(BaseModel):
    job_id: str
    status: PlanStatus
    current_step: str = ""
    progress_pct: int = 0
    output: Optional[DecorOutput] = None
    error: Optional[str] = None
    tour_status: TourStatus = TourStatus.IDLE
    tour_error: Optional[str] = None


# ── API Request Models ───────────────────────────────────────────────────────

class PlanRequest(BaseModel):
    """Start a plan: form data plus an optional venue photo as a data URL."""
    form: DecorFormData = Field(default_factory=DecorFormData)
    source_image: Optional[str] = Field(
        None, description="Optional venue photo, e.g. 'data:image/jpeg;base64,...'"
    )


class SummarySegment(BaseModel):
    kind: Literal["text", "image"]
    text: str = ""
    image: Optional[GeneratedImage] = None
