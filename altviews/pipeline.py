from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from altviews.config import Settings
from altviews.errors import InputError, ParseError, ViewValidationError
from altviews.extract import ArticleFetcher, is_valid_url
from altviews.images import (
    ImageGenerationResult,
    ImageGenerator,
    LeonardoImageGenerator,
    PlaceholderImageSource,
    RunwareImageGenerator,
)
from altviews.json_recovery import recover_json
from altviews.llm import LLMGenerationParams, ViewPrompter
from altviews.views import View, is_http_url, normalize_views

logger = logging.getLogger(__name__)


def build_runware_generator(settings: Settings) -> RunwareImageGenerator:
    return RunwareImageGenerator(
        api_key=settings.RUNWARE_API_KEY,
        api_url=settings.RUNWARE_API_URL,
        model=settings.RUNWARE_DEFAULT_MODEL,
        width=settings.RUNWARE_DEFAULT_WIDTH,
        height=settings.RUNWARE_DEFAULT_HEIGHT,
        timeout_seconds=settings.IMAGE_REQUEST_TIMEOUT_SECONDS,
    )


def build_image_generator(settings: Settings) -> ImageGenerator:
    if settings.IMAGE_PROVIDER == "runware":
        return build_runware_generator(settings)
    if settings.IMAGE_PROVIDER == "placeholder":
        return PlaceholderImageSource(url_template=settings.PLACEHOLDER_IMAGE_URL_TEMPLATE)
    return LeonardoImageGenerator(
        api_key=settings.LEONARDO_API_KEY,
        base_url=settings.LEONARDO_API_BASE_URL,
        model_id=settings.LEONARDO_MODEL_ID,
        style_uuid=settings.LEONARDO_STYLE_UUID,
        contrast=settings.LEONARDO_CONTRAST,
        alchemy=settings.LEONARDO_ALCHEMY,
        width=settings.IMAGE_WIDTH,
        height=settings.IMAGE_HEIGHT,
        num_images=settings.IMAGE_NUM_IMAGES,
        poll_interval_seconds=settings.IMAGE_POLL_INTERVAL_SECONDS,
        max_attempts=settings.IMAGE_POLL_MAX_ATTEMPTS,
        timeout_seconds=settings.IMAGE_REQUEST_TIMEOUT_SECONDS,
    )


def _unwrap_view_items(value: Any) -> Any:
    # Some replies wrap the array: {"views": [...]}.
    if isinstance(value, dict):
        for key in ("views", "interpretations", "data"):
            if isinstance(value.get(key), list):
                return value[key]
    return value


class ViewPipeline:
    """URL or text -> plain text -> LLM -> recovered JSON -> views -> images."""

    def __init__(
        self,
        *,
        fetcher: ArticleFetcher,
        prompter: ViewPrompter,
        image_generator: ImageGenerator,
        view_count: int = 3,
        generate_images_by_default: bool = False,
    ) -> None:
        self.fetcher = fetcher
        self.prompter = prompter
        self.image_generator = image_generator
        self.view_count = view_count
        self.generate_images_by_default = generate_images_by_default

    @classmethod
    def from_settings(cls, settings: Settings) -> "ViewPipeline":
        return cls(
            fetcher=ArticleFetcher(
                timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
                user_agent=settings.FETCH_USER_AGENT,
            ),
            prompter=ViewPrompter(
                params=LLMGenerationParams(
                    model=settings.ANTHROPIC_MODEL,
                    max_tokens=settings.ANTHROPIC_MAX_TOKENS,
                    temperature=settings.ANTHROPIC_TEMPERATURE,
                    timeout_seconds=settings.LLM_REQUEST_TIMEOUT_SECONDS,
                ),
                api_key=settings.ANTHROPIC_API_KEY,
                base_url=settings.ANTHROPIC_BASE_URL,
                view_count=settings.VIEWS_PER_ARTICLE,
                max_article_chars=settings.MAX_ARTICLE_CHARS,
            ),
            image_generator=build_image_generator(settings),
            view_count=settings.VIEWS_PER_ARTICLE,
            generate_images_by_default=settings.GENERATE_IMAGES_BY_DEFAULT,
        )

    async def resolve_text(self, *, url: Optional[str] = None, text: Optional[str] = None) -> str:
        if text is not None and text.strip():
            return text.strip()
        if url is not None and url.strip():
            if not is_valid_url(url):
                raise InputError("Please enter a valid URL")
            return await self.fetcher.fetch_text(url)
        raise InputError("Either url or text is required")

    async def generate_views(
        self,
        *,
        url: Optional[str] = None,
        text: Optional[str] = None,
        generate_images: Optional[bool] = None,
    ) -> list[View]:
        article = await self.resolve_text(url=url, text=text)
        raw_content = await self.prompter.generate_raw(article)

        outcome = recover_json(raw_content)
        if not outcome.ok:
            logger.warning(
                "views.parse_failed",
                extra={"attempts": outcome.attempts, "raw_head": raw_content[:400]},
            )
            raise ParseError("Failed to parse views", raw_content=raw_content, attempts=outcome.attempts)

        items = _unwrap_view_items(outcome.value)
        views = normalize_views(items, raw_content=raw_content)
        if len(views) != self.view_count:
            raise ViewValidationError(
                f"Expected {self.view_count} views, got {len(views)}",
                kind="upstream",
                raw_content=raw_content,
            )
        logger.info(
            "views.generated",
            extra={"count": len(views), "strategy": outcome.strategy, "source": "url" if url and not text else "text"},
        )

        should_illustrate = self.generate_images_by_default if generate_images is None else generate_images
        if should_illustrate:
            views = await self.illustrate(views)
        return views

    async def illustrate(self, views: list[View]) -> list[View]:
        """Attach one image per view; jobs run concurrently.

        Exhausted or failed jobs leave ``imageUrl`` empty rather than failing
        the whole request.
        """
        results = await asyncio.gather(
            *(
                self.image_generator.generate(view.imageGenerationPrompt, index=position + 1)
                for position, view in enumerate(views)
            )
        )
        illustrated: list[View] = []
        for view, result in zip(views, results):
            illustrated.append(view.model_copy(update={"imageUrl": self._image_url_or_none(view, result)}))
        return illustrated

    def _image_url_or_none(self, view: View, result: ImageGenerationResult) -> Optional[str]:
        if result.ok:
            if is_http_url(result.image_url):
                return result.image_url
            logger.warning(
                "views.image_url_invalid",
                extra={"view_id": view.id, "provider": result.provider, "image_url": result.image_url},
            )
            return None
        logger.warning(
            "views.image_missing",
            extra={
                "view_id": view.id,
                "provider": result.provider,
                "state": result.state.value,
                "attempts": result.attempts,
                "error": result.error,
            },
        )
        return None

    async def aclose(self) -> None:
        await self.fetcher.aclose()
        await self.prompter.aclose()
        await self.image_generator.aclose()
