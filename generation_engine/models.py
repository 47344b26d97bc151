"""Pydantic data models used across the generation engine."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, StrictStr, field_validator

Priority = Literal["high", "medium", "low"]
AdObjective = Literal["awareness", "engagement", "conversions", "retention"]
AdFormat = Literal["single_image", "carousel", "video"]
VideoStatus = Literal["pending", "processing", "completed", "failed"]

MAX_COPY_LENGTH = 280
MIN_CREATIVE_PROMPT_LENGTH = 50


class Suggestion(BaseModel):
    """Topic-scoped action with ready-to-post copy.

    Doubles as the validation schema for raw LLM items: anything that fails
    ``model_validate`` is treated as absent.
    """

    id: Optional[StrictStr] = Field(None, description="Stable id, filled as sug-<n> when the model omits it")
    title: StrictStr = Field(..., min_length=1, description="Short action title, e.g. 'Fix slow checkout flow'")
    rationale: StrictStr = Field(..., description="Why this matters, grounded in topic numbers")
    topic: StrictStr = Field(..., min_length=1, description="Canonical topic the suggestion addresses")
    priority: Priority
    suggested_copy: StrictStr = Field(..., max_length=MAX_COPY_LENGTH, description="Ready-to-post copy")
    tone: StrictStr = Field(..., description="empathetic / funny / promotional / straightforward")

    model_config = {"extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Models sometimes number their items; anything else is refilled as sug-<n>
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value if isinstance(value, str) else None


class SuggestionHistory(BaseModel):
    """Recently suggested topics, newest first, normalised."""

    recent_topics: List[str] = Field(default_factory=list)


class AdIdeaDraft(BaseModel):
    """Schema for one raw ad idea returned by the LLM."""

    headline: StrictStr = Field(..., min_length=1)
    body: StrictStr = Field(..., min_length=1)
    call_to_action: StrictStr = Field(..., min_length=1)
    hashtags: List[StrictStr]
    objective: AdObjective
    creative_prompt: StrictStr = Field(
        ...,
        min_length=MIN_CREATIVE_PROMPT_LENGTH + 1,
        validation_alias=AliasChoices("creative_prompt", "image_prompt", "video_prompt"),
    )

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class AdIdea(BaseModel):
    """A promotable ad unit derived from a suggestion."""

    id: str
    suggestion_id: str
    topic: str
    headline: str
    body: str
    call_to_action: str
    hashtags: List[str] = Field(default_factory=list)
    format: AdFormat = "single_image"
    objective: AdObjective
    creative_prompt: str = Field(..., description="Prompt sent to the image/video generator")
    suggested_post_text: str = ""
    generated_media_url: Optional[str] = None
    video_status: Optional[VideoStatus] = Field(None, description="Only set for video-format ideas")
    video_job_id: Optional[str] = None


class ImageResult(BaseModel):
    url: str
    revised_prompt: Optional[str] = None


class VideoJob(BaseModel):
    """Status of an asynchronous video generation request."""

    job_id: str
    status: VideoStatus
    url: Optional[str] = None


class GeneratedMedia(BaseModel):
    """A media asset attached to exactly one ad idea."""

    ad_idea_id: str
    media_type: Literal["image", "video"]
    url: str
    prompt_used: str
    generated_at: datetime
    width: Optional[int] = None
    height: Optional[int] = None
    job_id: Optional[str] = None


class CreativeBatch(BaseModel):
    """Creative orchestrator output for one pipeline run."""

    ad_ideas: List[AdIdea] = Field(default_factory=list)
    media: List[GeneratedMedia] = Field(default_factory=list)
    pending_videos: List[AdIdea] = Field(default_factory=list, description="Submitted video ideas awaiting completion")
