from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol
from uuid import uuid4

import httpx

from altviews.errors import ConfigurationError, InputError, UpstreamError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

_BODY_EXCERPT_CHARS = 500


class GenerationState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    READY = "ready"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class GeneratedImage:
    url: str
    image_id: Optional[str] = None
    seed: Optional[int] = None


@dataclass
class GenerationJob:
    generation_id: str
    status: str = "pending"
    images: list[GeneratedImage] = field(default_factory=list)


@dataclass
class ImageGenerationResult:
    state: GenerationState
    provider: str
    images: list[GeneratedImage] = field(default_factory=list)
    generation_id: Optional[str] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is GenerationState.READY and bool(self.images)

    @property
    def image_url(self) -> Optional[str]:
        return self.images[0].url if self.images else None

    @property
    def all_image_urls(self) -> list[str]:
        return [image.url for image in self.images]


class ImageGenerator(Protocol):
    provider: str

    async def generate(self, prompt: str, *, index: Optional[int] = None) -> ImageGenerationResult: ...

    async def aclose(self) -> None: ...


def _require_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InputError("A valid prompt is required")
    return prompt.strip()


def _body_excerpt(response: httpx.Response) -> str:
    try:
        return response.text[:_BODY_EXCERPT_CHARS]
    except Exception:  # noqa: BLE001
        return ""


class LeonardoImageGenerator:
    """
    Asynchronous Leonardo generation driven to completion by polling.

    States: submitted -> polling -> ready | exhausted | failed. The status
    endpoint is polled at a fixed interval for at most ``max_attempts`` reads;
    every read counts, including ones that fail in transit. Only input and
    configuration problems raise; every other outcome is returned as an
    ``ImageGenerationResult``.
    """

    provider = "leonardo"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: str = "https://cloud.leonardo.ai/api/rest/v1",
        model_id: str,
        style_uuid: Optional[str] = None,
        contrast: float = 3.5,
        alchemy: bool = True,
        width: int = 1472,
        height: int = 832,
        num_images: int = 4,
        poll_interval_seconds: float = 7.0,
        max_attempts: int = 10,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.style_uuid = style_uuid
        self.contrast = contrast
        self.alchemy = alchemy
        self.width = width
        self.height = height
        self.num_images = num_images
        self.poll_interval_seconds = poll_interval_seconds
        self.max_attempts = max_attempts
        self._timeout = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "authorization": f"Bearer {self._api_key}",
            "content-type": "application/json",
        }

    def _submit_payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "modelId": self.model_id,
            "contrast": self.contrast,
            "prompt": prompt,
            "num_images": self.num_images,
            "width": self.width,
            "height": self.height,
            "alchemy": self.alchemy,
            "enhancePrompt": False,
        }
        if self.style_uuid:
            payload["styleUUID"] = self.style_uuid
        return payload

    async def submit(self, prompt: str) -> GenerationJob:
        response = await self._client.post(
            f"{self.base_url}/generations",
            headers=self._headers(),
            json=self._submit_payload(prompt),
            timeout=self._timeout,
        )
        if response.is_error:
            body = _body_excerpt(response)
            logger.error(
                "leonardo.submit_rejected",
                extra={"status": response.status_code, "body": body},
            )
            raise UpstreamError(
                "Failed to initiate image generation",
                provider=self.provider,
                upstream_status=response.status_code,
                upstream_body=body,
            )
        data = response.json()
        job = data.get("sdGenerationJob") if isinstance(data, dict) else None
        generation_id = job.get("generationId") if isinstance(job, dict) else None
        if not isinstance(generation_id, str) or not generation_id:
            logger.warning("leonardo.no_generation_job", extra={"body": data})
            raise UpstreamError(
                "No generation job created",
                provider=self.provider,
                upstream_status=response.status_code,
                upstream_body=data,
            )
        logger.info("leonardo.job_created", extra={"generation_id": generation_id})
        return GenerationJob(generation_id=generation_id)

    async def fetch_job(self, generation_id: str) -> GenerationJob:
        response = await self._client.get(
            f"{self.base_url}/generations/{generation_id}",
            headers=self._headers(),
            timeout=self._timeout,
        )
        response.raise_for_status()
        data = response.json()
        generation = data.get("generations_by_pk") if isinstance(data, dict) else None
        if not isinstance(generation, dict):
            generation = {}
        generated = generation.get("generated_images")
        images: list[GeneratedImage] = []
        for item in generated if isinstance(generated, list) else []:
            url = item.get("url") if isinstance(item, dict) else None
            if isinstance(url, str) and url:
                images.append(GeneratedImage(url=url, image_id=item.get("id")))
        provider_status = str(generation.get("status") or "").upper()
        if images:
            status = "ready"
        elif provider_status == "FAILED":
            status = "failed"
        else:
            status = "pending"
        return GenerationJob(generation_id=generation_id, status=status, images=images)

    async def generate(self, prompt: str, *, index: Optional[int] = None) -> ImageGenerationResult:
        text = _require_prompt(prompt)
        if not self._api_key:
            raise ConfigurationError("Image generation service", missing_setting="LEONARDO_API_KEY")

        state = GenerationState.SUBMITTED
        generation_id: Optional[str] = None
        attempts = 0
        try:
            try:
                job = await self.submit(text)
            except UpstreamError as exc:
                return ImageGenerationResult(
                    state=GenerationState.FAILED,
                    provider=self.provider,
                    error=exc.message,
                )
            generation_id = job.generation_id

            state = GenerationState.POLLING
            while attempts < self.max_attempts:
                attempts += 1
                logger.debug(
                    "leonardo.poll",
                    extra={"generation_id": generation_id, "attempt": attempts, "max_attempts": self.max_attempts},
                )
                try:
                    job = await self.fetch_job(generation_id)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.warning(
                        "leonardo.poll_failed",
                        extra={"generation_id": generation_id, "attempt": attempts, "error": str(exc)},
                    )
                else:
                    if job.images:
                        logger.info(
                            "leonardo.images_ready",
                            extra={"generation_id": generation_id, "count": len(job.images), "attempts": attempts},
                        )
                        return ImageGenerationResult(
                            state=GenerationState.READY,
                            provider=self.provider,
                            images=job.images,
                            generation_id=generation_id,
                            attempts=attempts,
                        )
                    if job.status == "failed":
                        return ImageGenerationResult(
                            state=GenerationState.FAILED,
                            provider=self.provider,
                            generation_id=generation_id,
                            attempts=attempts,
                            error="Image provider reported the generation as failed",
                        )
                if attempts < self.max_attempts:
                    await self._sleep(self.poll_interval_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "leonardo.unexpected_error",
                extra={"generation_id": generation_id, "state": state.value, "attempts": attempts},
            )
            return ImageGenerationResult(
                state=GenerationState.FAILED,
                provider=self.provider,
                generation_id=generation_id,
                attempts=attempts,
                error=f"Unexpected error during image generation: {exc}",
            )

        logger.warning(
            "leonardo.exhausted",
            extra={"generation_id": generation_id, "attempts": attempts},
        )
        return ImageGenerationResult(
            state=GenerationState.EXHAUSTED,
            provider=self.provider,
            generation_id=generation_id,
            attempts=attempts,
            error=f"Could not generate image after {attempts} attempts",
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class RunwareImageGenerator:
    """Single-shot Runware inference; images come back in the same response."""

    provider = "runware"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        api_url: str = "https://api.runware.ai/v1",
        model: str = "civitai:102438@133677",
        width: int = 1024,
        height: int = 704,
        timeout_seconds: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self.api_url = api_url
        self.model = model
        self.width = width
        self.height = height
        self._timeout = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def _payload(
        self,
        prompt: str,
        *,
        width: int,
        height: int,
        model: str,
        number_results: int,
    ) -> list[dict[str, Any]]:
        return [
            {"taskType": "authentication", "apiKey": self._api_key},
            {
                "taskType": "imageInference",
                "taskUUID": str(uuid4()),
                "positivePrompt": prompt,
                "width": width,
                "height": height,
                "model": model,
                "numberResults": number_results,
            },
        ]

    async def generate(
        self,
        prompt: str,
        *,
        index: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        model: Optional[str] = None,
        number_results: int = 1,
    ) -> ImageGenerationResult:
        text = _require_prompt(prompt)
        if not self._api_key:
            raise ConfigurationError("Image generation service", missing_setting="RUNWARE_API_KEY")

        payload = self._payload(
            text,
            width=width or self.width,
            height=height or self.height,
            model=model or self.model,
            number_results=number_results,
        )
        try:
            response = await self._client.post(
                self.api_url,
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self._timeout,
            )
            if response.is_error:
                body = _body_excerpt(response)
                logger.error("runware.request_rejected", extra={"status": response.status_code, "body": body})
                return ImageGenerationResult(
                    state=GenerationState.FAILED,
                    provider=self.provider,
                    attempts=1,
                    error="Failed to initiate image generation",
                )
            data = response.json()
            images = [
                GeneratedImage(url=item["imageURL"], image_id=item.get("imageUUID"), seed=item.get("seed"))
                for item in (data.get("data") or [])
                if isinstance(item, dict) and item.get("taskType") == "imageInference" and item.get("imageURL")
            ]
        except Exception as exc:  # noqa: BLE001
            logger.exception("runware.unexpected_error")
            return ImageGenerationResult(
                state=GenerationState.FAILED,
                provider=self.provider,
                attempts=1,
                error=f"Unexpected error during image generation: {exc}",
            )

        if not images:
            errors = data.get("errors") if isinstance(data, dict) else None
            logger.warning("runware.no_images", extra={"errors": errors})
            return ImageGenerationResult(
                state=GenerationState.FAILED,
                provider=self.provider,
                attempts=1,
                error="No images generated",
            )
        return ImageGenerationResult(
            state=GenerationState.READY,
            provider=self.provider,
            images=images,
            attempts=1,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class PlaceholderImageSource:
    """Stable stock-photo URLs keyed by view position; no network calls."""

    provider = "placeholder"

    def __init__(self, *, url_template: str = "https://picsum.photos/seed/{seed}/800/600") -> None:
        self.url_template = url_template

    async def generate(self, prompt: str, *, index: Optional[int] = None) -> ImageGenerationResult:
        _require_prompt(prompt)
        seed = index if index is not None else 1
        return ImageGenerationResult(
            state=GenerationState.READY,
            provider=self.provider,
            images=[GeneratedImage(url=self.url_template.format(seed=seed))],
            attempts=0,
        )

    async def aclose(self) -> None:
        return None
