"""Turn suggestions into ad ideas and generate one media asset per idea."""

import logging
from datetime import datetime, timezone
from typing import List, Sequence

from pydantic import ValidationError

from fetchers.llm_client import extract_list
from pulse_engine.errors import ConfigurationError
from pulse_engine.models import BrandVoicePost

from .models import AdIdea, AdIdeaDraft, CreativeBatch, GeneratedMedia, Suggestion

logger = logging.getLogger(__name__)

ADS_PER_SUGGESTION = 4
MAX_VOICE_SAMPLES = 10
CREATIVE_TEMPERATURE = 0.7
IMAGE_SIZE = 1024


def compose_post_text(draft: AdIdeaDraft) -> str:
    return f"{draft.headline}\n\n{draft.body}\n\n{draft.call_to_action} {' '.join(draft.hashtags)}".strip()


def validate_ad_ideas(raw_items: Sequence, suggestion: Suggestion, ad_format: str) -> List[AdIdea]:
    """Schema-check raw LLM ad ideas, keeping at most ``ADS_PER_SUGGESTION``."""
    ideas: List[AdIdea] = []
    for item in raw_items:
        if len(ideas) >= ADS_PER_SUGGESTION:
            break
        try:
            draft = AdIdeaDraft.model_validate(item)
        except ValidationError as e:
            logger.info(f"Dropping invalid ad idea for {suggestion.id}: {e.error_count()} validation error(s)")
            continue
        ideas.append(
            AdIdea(
                id=f"ad-{suggestion.id}-{len(ideas) + 1}",
                suggestion_id=suggestion.id or "",
                topic=suggestion.topic,
                headline=draft.headline,
                body=draft.body,
                call_to_action=draft.call_to_action,
                hashtags=list(draft.hashtags),
                format=ad_format,
                objective=draft.objective,
                creative_prompt=draft.creative_prompt,
                suggested_post_text=compose_post_text(draft),
                video_status="pending" if ad_format == "video" else None,
            )
        )
    return ideas


class CreativeOrchestrator:
    """Suggestion -> ad ideas -> media, one external call at a time.

    Media failures are isolated per ad idea. An idea whose media never
    materialises is left out of ``CreativeBatch.ad_ideas``.
    """

    def __init__(
        self,
        llm_client,
        image_client=None,
        video_client=None,
        ad_format: str = "single_image",
        wait_for_video: bool = False,
    ):
        if ad_format not in ("single_image", "video"):
            raise ConfigurationError(f"Unsupported ad format {ad_format!r}")
        self.llm = llm_client
        self.image_client = image_client
        self.video_client = video_client
        self.ad_format = ad_format
        self.wait_for_video = wait_for_video
        self.logger = logger

    def _get_ads_prompt(self, brand: str, suggestion: Suggestion, voice_samples: Sequence[BrandVoicePost]) -> str:
        voice_context = ""
        if voice_samples:
            lines = "\n".join(f'- "{post.text}"' for post in voice_samples[:MAX_VOICE_SAMPLES])
            voice_context = f"Brand's exact tone and style from recent posts (MUST MATCH THIS VOICE):\n{lines}\n\n"

        if self.ad_format == "video":
            format_rule = "- Format: short video (5 seconds, 16:9); the creative prompt describes motion, scene and camera"
        else:
            format_rule = "- Format: single_image (1024x1024); the creative prompt describes one clean, realistic visual"

        return f"""{voice_context}ACTION TO TAKE:
Title: {suggestion.title}
Rationale: {suggestion.rationale}
Topic: {suggestion.topic}
Priority: {suggestion.priority}
Tone: {suggestion.tone}
Example post: "{suggestion.suggested_copy}"

You are a world-class social ad strategist and copywriter for {brand}.
Generate exactly {ADS_PER_SUGGESTION} promotable ad ideas that directly address the action above.

Rules:
- Match the brand's voice from the posts above
- Vary objectives: one awareness, one engagement, one conversions, one retention
{format_rule}
- Include a punchy headline, compelling body, clear CTA and 2-4 relevant hashtags
- The creative prompt must be detailed (well over 50 characters)

Return ONLY a JSON object with this exact structure:
{{
  "ads": [
    {{
      "headline": string,
      "body": string,
      "call_to_action": string,
      "hashtags": string[],
      "objective": "awareness" | "engagement" | "conversions" | "retention",
      "creative_prompt": string
    }}
  ]
}}"""

    async def generate_ad_ideas(
        self, brand: str, suggestion: Suggestion, voice_samples: Sequence[BrandVoicePost] = ()
    ) -> List[AdIdea]:
        """One LLM call for one suggestion; failures yield no ideas."""
        prompt = self._get_ads_prompt(brand, suggestion, voice_samples)
        try:
            result = await self.llm.complete(prompt, json_mode=True, temperature=CREATIVE_TEMPERATURE)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to generate ad ideas for suggestion {suggestion.id}: {e}")
            return []

        ideas = validate_ad_ideas(extract_list(result, "ads"), suggestion, self.ad_format)
        self.logger.info(f"Suggestion {suggestion.id}: {len(ideas)} valid ad ideas")
        return ideas

    async def _generate_image(self, ad: AdIdea) -> GeneratedMedia:
        image = await self.image_client.generate(ad.creative_prompt)
        return GeneratedMedia(
            ad_idea_id=ad.id,
            media_type="image",
            url=image.url,
            prompt_used=image.revised_prompt or ad.creative_prompt,
            generated_at=datetime.now(timezone.utc),
            width=IMAGE_SIZE,
            height=IMAGE_SIZE,
        )

    async def _generate_video(self, ad: AdIdea) -> GeneratedMedia:
        job = await self.video_client.generate(ad.creative_prompt)
        return GeneratedMedia(
            ad_idea_id=ad.id,
            media_type="video",
            url=job.url,
            prompt_used=ad.creative_prompt,
            generated_at=datetime.now(timezone.utc),
            job_id=job.job_id,
        )

    async def attach_media(self, ideas: Sequence[AdIdea], batch: CreativeBatch) -> None:
        """Generate media for each idea in turn, recording results into ``batch``."""
        for ad in ideas:
            try:
                if ad.format == "video":
                    if self.video_client is None:
                        raise ConfigurationError("Video ad format requested but no video client configured")
                    if not self.wait_for_video:
                        job = await self.video_client.submit(ad.creative_prompt)
                        batch.pending_videos.append(
                            ad.model_copy(update={"video_status": job.status, "video_job_id": job.job_id})
                        )
                        continue
                    media = await self._generate_video(ad)
                    ad = ad.model_copy(
                        update={"generated_media_url": media.url, "video_status": "completed", "video_job_id": media.job_id}
                    )
                else:
                    if self.image_client is None:
                        raise ConfigurationError("Image ad format requested but no image client configured")
                    media = await self._generate_image(ad)
                    ad = ad.model_copy(update={"generated_media_url": media.url})
            except ConfigurationError:
                raise
            except Exception as e:
                self.logger.error(f"Failed to generate media for ad {ad.id}: {e}")
                continue

            if not ad.generated_media_url:
                self.logger.error(f"Ad {ad.id} has no media URL, dropping it")
                continue
            batch.ad_ideas.append(ad)
            batch.media.append(media)

    async def run(
        self, brand: str, suggestions: Sequence[Suggestion], voice_samples: Sequence[BrandVoicePost] = ()
    ) -> CreativeBatch:
        batch = CreativeBatch()
        for suggestion in suggestions:
            ideas = await self.generate_ad_ideas(brand, suggestion, voice_samples)
            await self.attach_media(ideas, batch)
        self.logger.info(
            f"Creative run finished: {len(batch.ad_ideas)} complete ads, {len(batch.pending_videos)} pending videos"
        )
        return batch


async def refresh_pending_video(ad: AdIdea, video_client) -> AdIdea:
    """Poll a pending video idea once and return it with updated status/URL."""
    if ad.format != "video" or not ad.video_job_id:
        return ad
    job = await video_client.status(ad.video_job_id)
    return ad.model_copy(update={"video_status": job.status, "generated_media_url": job.url})
