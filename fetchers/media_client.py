"""Image (xAI) and video (Pika via fal.ai queue) generation clients."""

import asyncio
import logging
from typing import Optional

import httpx

from generation_engine.models import ImageResult, VideoJob
from pulse_engine.config import Settings
from pulse_engine.errors import MediaGenerationError

logger = logging.getLogger(__name__)

XAI_IMAGES_URL = "https://api.x.ai/v1/images/generations"
XAI_IMAGE_MODEL = "grok-imagine-v0p9"

FAL_QUEUE_URL = "https://queue.fal.run"
PIKA_MODEL_PATH = "fal-ai/pika/v2.2/text-to-video"
PIKA_APP_PATH = "fal-ai/pika"

FAL_STATUS_MAP = {
    "IN_QUEUE": "pending",
    "IN_PROGRESS": "processing",
    "COMPLETED": "completed",
    "FAILED": "failed",
    "ERROR": "failed",
}


class ImageClient:
    """Text-to-image generation. Any failure is a :class:`MediaGenerationError`."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.http = http_client
        self.logger = logger

    async def generate(self, prompt: str) -> ImageResult:
        api_key = self.settings.require("xai_api_key", "XAI_API_KEY")
        payload = {
            "prompt": prompt,
            "model": XAI_IMAGE_MODEL,
            "n": 1,
            "response_format": "url",
        }
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            if self.http is not None:
                response = await self.http.post(XAI_IMAGES_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                    response = await client.post(XAI_IMAGES_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise MediaGenerationError(f"Image request failed: {e}") from e

        if response.status_code >= 400:
            raise MediaGenerationError(f"Failed to generate image ({response.status_code}): {response.text}")

        data = (response.json().get("data") or [{}])[0]
        if not data.get("url"):
            raise MediaGenerationError("No image URL returned")

        return ImageResult(url=data["url"], revised_prompt=data.get("revised_prompt") or prompt)


class VideoClient:
    """Pika text-to-video through the fal.ai queue REST API."""

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        poll_interval: float = 2.0,
        max_attempts: int = 60,
    ):
        self.settings = settings
        self.http = http_client
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.logger = logger

    def _headers(self) -> dict:
        return {"Authorization": f"Key {self.settings.require('fal_key', 'FAL_KEY')}"}

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        headers = self._headers()
        try:
            if self.http is not None:
                response = await self.http.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise MediaGenerationError(f"Video request failed: {e}") from e

        if response.status_code >= 400:
            raise MediaGenerationError(f"Video API error ({response.status_code}): {response.text}")
        return response.json()

    async def submit(
        self,
        prompt: str,
        aspect_ratio: str = "16:9",
        resolution: str = "720p",
        duration: int = 5,
    ) -> VideoJob:
        """Queue a generation request and return immediately."""
        body = {
            "prompt": prompt.strip(),
            "aspect_ratio": aspect_ratio,
            "resolution": resolution,
            "duration": duration,
        }
        data = await self._request("POST", f"{FAL_QUEUE_URL}/{PIKA_MODEL_PATH}", json=body)
        request_id = data.get("request_id")
        if not request_id:
            raise MediaGenerationError("Video submit returned no request_id")
        self.logger.info(f"Submitted video job {request_id}")
        return VideoJob(job_id=request_id, status="pending")

    async def status(self, job_id: str) -> VideoJob:
        """Current status of a job; fetches the URL once completed."""
        data = await self._request("GET", f"{FAL_QUEUE_URL}/{PIKA_APP_PATH}/requests/{job_id}/status")
        status = FAL_STATUS_MAP.get(str(data.get("status", "")).upper(), "pending")

        url = None
        if status == "completed":
            result = await self._request("GET", f"{FAL_QUEUE_URL}/{PIKA_APP_PATH}/requests/{job_id}")
            url = (result.get("video") or {}).get("url")
            if not url:
                status = "failed"
        return VideoJob(job_id=job_id, status=status, url=url)

    async def wait_for_completion(self, job_id: str) -> VideoJob:
        for _ in range(self.max_attempts):
            job = await self.status(job_id)
            if job.status == "completed" and job.url:
                return job
            if job.status == "failed":
                raise MediaGenerationError(f"Video generation failed for job {job_id}")
            await asyncio.sleep(self.poll_interval)
        raise MediaGenerationError(f"Video generation timed out after {self.max_attempts} attempts for job {job_id}")

    async def generate(self, prompt: str, **options) -> VideoJob:
        """Synchronous variant: submit and block until completed or timed out."""
        job = await self.submit(prompt, **options)
        return await self.wait_for_completion(job.job_id)
