"""Shared fakes for the pipeline tests. Nothing here touches the network."""

import copy
from datetime import datetime, timedelta, timezone

import pytest

from generation_engine.models import ImageResult, VideoJob
from pulse_engine.errors import MediaGenerationError
from pulse_engine.models import AnnotatedMention, BrandVoicePost, Mention, MentionMetrics

# Substrings that identify each prompt family
CLUSTER_PROMPT = "canonical business topics"
SUGGESTION_PROMPT = "actionable suggestions"
PLAYBOOK_PROMPT = "playbook for each topic"
ADS_PROMPT = "promotable ad ideas"

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
LONG_PROMPT = "A bright studio photo of a parcel arriving on a doorstep at sunrise, warm light, shallow depth of field"


class FakeLLM:
    """Routes prompts to canned responses by substring; an Exception response is raised."""

    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = {} if default is None else default
        self.prompts = []

    async def complete(self, prompt, json_mode=True, temperature=0.0):
        self.prompts.append(prompt)
        response = self.default
        for marker, routed in self.routes.items():
            if marker in prompt:
                response = routed
                break
        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    def calls(self, marker):
        return [p for p in self.prompts if marker in p]


class FakeMentionSource:
    def __init__(self, mentions=(), voice=(), mention_error=None, voice_error=None):
        self.mentions = list(mentions)
        self.voice = list(voice)
        self.mention_error = mention_error
        self.voice_error = voice_error
        self.calls = 0

    async def search_public_mentions(self, brand):
        self.calls += 1
        if self.mention_error is not None:
            raise self.mention_error
        return list(self.mentions)

    async def search_brand_voice(self, brand, limit=20):
        if self.voice_error is not None:
            raise self.voice_error
        return list(self.voice)


class FakeImageClient:
    """Fails for prompts containing any of ``fail_on``."""

    def __init__(self, fail_on=()):
        self.fail_on = tuple(fail_on)
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if any(marker in prompt for marker in self.fail_on):
            raise MediaGenerationError("image backend exploded")
        return ImageResult(url=f"https://img.example/{len(self.prompts)}.png", revised_prompt=prompt)


class FakeVideoClient:
    def __init__(self, final_url="https://video.example/clip.mp4", fail=False):
        self.final_url = final_url
        self.fail = fail
        self.submitted = []

    async def submit(self, prompt, **options):
        self.submitted.append(prompt)
        return VideoJob(job_id=f"job-{len(self.submitted)}", status="pending")

    async def status(self, job_id):
        if self.fail:
            return VideoJob(job_id=job_id, status="failed")
        return VideoJob(job_id=job_id, status="completed", url=self.final_url)

    async def generate(self, prompt, **options):
        job = await self.submit(prompt, **options)
        if self.fail or not self.final_url:
            raise MediaGenerationError(f"Video generation failed for job {job.job_id}")
        return VideoJob(job_id=job.job_id, status="completed", url=self.final_url)


class CountingScorer:
    """Polarity scorer stub that records every text it scores."""

    def __init__(self, scores=None, default=0.0):
        self.scores = dict(scores or {})
        self.default = default
        self.texts = []

    def __call__(self, text):
        self.texts.append(text)
        return self.scores.get(text, self.default)


def make_mention(mention_id, text, minutes=0, likes=0, retweets=0, replies=0, quotes=0, followers=5000):
    return Mention(
        id=str(mention_id),
        text=text,
        author_id=f"user-{mention_id}",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        metrics=MentionMetrics(likes=likes, retweets=retweets, replies=replies, quotes=quotes),
        author_followers=followers,
    )


def make_annotation(mention_id, sentiment="neutral", score=0.5, topics=("general",), intensity="low",
                    analyzed_at=BASE_TIME, is_sarcasm=False):
    return AnnotatedMention(
        mention_id=str(mention_id),
        sentiment=sentiment,
        sentiment_score=score,
        topics=list(topics),
        intensity=intensity,
        is_sarcasm=is_sarcasm,
        analyzed_at=analyzed_at,
    )


def suggestion_payload(topic, suggestion_id=None, copy_text="We hear you and we're on it.", priority="high"):
    item = {
        "title": f"Address {topic}",
        "rationale": f"{topic} is driving negative mentions",
        "topic": topic,
        "priority": priority,
        "suggested_copy": copy_text,
        "tone": "empathetic",
    }
    if suggestion_id:
        item["id"] = suggestion_id
    return item


def ad_payload(objective="awareness", prompt=LONG_PROMPT, headline="Faster shipping is here"):
    return {
        "headline": headline,
        "body": "Orders now ship in 24 hours.",
        "call_to_action": "Shop now",
        "hashtags": ["#fastshipping", "#acme"],
        "objective": objective,
        "creative_prompt": prompt,
    }


@pytest.fixture
def voice_posts():
    return [
        BrandVoicePost(id="v1", text="New drop Friday. You know the drill.", created_at=BASE_TIME),
        BrandVoicePost(id="v2", text="We read every reply. Keep them coming.", created_at=BASE_TIME),
    ]
