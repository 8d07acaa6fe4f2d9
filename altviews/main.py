from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from altviews.config import Settings, settings as default_settings
from altviews.errors import (
    AltViewsError,
    ConfigurationError,
    ImageGenerationError,
    InputError,
    UpstreamError,
)
from altviews.images import GenerationState, ImageGenerationResult, ImageGenerator, RunwareImageGenerator
from altviews.pipeline import ViewPipeline, build_runware_generator
from altviews.schemas import (
    FetchUrlRequest,
    FetchUrlResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    GenerateViewsRequest,
    GenerateViewsResponse,
    RunwareImage,
    RunwareImageRequest,
    RunwareImageResponse,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    package_logger = logging.getLogger("altviews")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(level)


def get_pipeline(request: Request) -> ViewPipeline:
    return request.app.state.pipeline


def get_image_generator(request: Request) -> ImageGenerator:
    return request.app.state.pipeline.image_generator


def get_runware(request: Request) -> RunwareImageGenerator:
    return request.app.state.runware


def _raise_for_image_result(result: ImageGenerationResult) -> None:
    if result.ok:
        return
    exhausted = result.state is GenerationState.EXHAUSTED
    raise ImageGenerationError(
        result.error or "Image generation failed",
        exhausted=exhausted,
        attempts=result.attempts,
        reason=result.state.value,
    )


def create_app(
    app_settings: Optional[Settings] = None,
    *,
    pipeline: Optional[ViewPipeline] = None,
    runware: Optional[RunwareImageGenerator] = None,
) -> FastAPI:
    resolved_settings = app_settings or default_settings

    @asynccontextmanager
    async def _app_lifespan(app: FastAPI) -> AsyncIterator[None]:
        _configure_logging(resolved_settings.LOG_LEVEL)
        owned = []
        if app.state.pipeline is None:
            app.state.pipeline = ViewPipeline.from_settings(resolved_settings)
            owned.append(app.state.pipeline)
        if app.state.runware is None:
            app.state.runware = build_runware_generator(resolved_settings)
            owned.append(app.state.runware)
        logger.info(
            "altviews.startup",
            extra={
                "environment": resolved_settings.ENVIRONMENT,
                "image_provider": app.state.pipeline.image_generator.provider,
            },
        )
        try:
            yield
        finally:
            for service in owned:
                await service.aclose()

    app = FastAPI(
        title="Alternative Views API",
        default_response_class=ORJSONResponse,
        lifespan=_app_lifespan,
    )
    app.state.settings = resolved_settings
    app.state.pipeline = pipeline
    app.state.runware = runware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(resolved_settings.BACKEND_CORS_ORIGINS)),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AltViewsError)
    async def altviews_error_handler(_request: Request, exc: AltViewsError) -> ORJSONResponse:
        if isinstance(exc, ConfigurationError):
            logger.error(
                "service_not_configured",
                extra={"service": exc.service, "missing_setting": exc.missing_setting},
            )
        elif isinstance(exc, UpstreamError):
            logger.error(
                "upstream_error",
                extra={
                    "provider": exc.provider,
                    "status": exc.upstream_status,
                    "body": exc.upstream_body,
                },
            )
        elif exc.status_code >= 500:
            logger.warning("request_failed", extra={"error": exc.message, "status": exc.status_code})
        return ORJSONResponse(
            status_code=exc.status_code,
            content=exc.public_payload(expose_details=resolved_settings.EXPOSE_UPSTREAM_DETAILS),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        errors = [
            {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return ORJSONResponse(
            status_code=InputError.status_code,
            content={"error": "Invalid request body", "details": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"error": "Internal server error."})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/generate-views", response_model=GenerateViewsResponse, response_model_exclude_none=True)
    async def generate_views(
        payload: GenerateViewsRequest,
        view_pipeline: ViewPipeline = Depends(get_pipeline),
    ):
        views = await view_pipeline.generate_views(
            url=payload.url,
            text=payload.text,
            generate_images=payload.generateImages,
        )
        return GenerateViewsResponse(views=views)

    @app.post("/api/generate-image", response_model=GenerateImageResponse)
    async def generate_image(
        payload: GenerateImageRequest,
        image_generator: ImageGenerator = Depends(get_image_generator),
    ):
        result = await image_generator.generate(payload.prompt or "")
        _raise_for_image_result(result)
        return GenerateImageResponse(
            imageUrl=result.image_url,
            allImageUrls=result.all_image_urls,
            generationId=result.generation_id,
            attempts=result.attempts,
        )

    @app.post("/api/runware-image", response_model=RunwareImageResponse)
    async def runware_image(
        payload: RunwareImageRequest,
        generator: RunwareImageGenerator = Depends(get_runware),
    ):
        result = await generator.generate(
            payload.prompt or "",
            width=payload.width,
            height=payload.height,
            model=payload.model,
            number_results=payload.numberResults,
        )
        _raise_for_image_result(result)
        return RunwareImageResponse(
            imageUrl=result.image_url,
            allImages=[
                RunwareImage(imageUrl=image.url, imageUUID=image.image_id, seed=image.seed)
                for image in result.images
            ],
        )

    @app.post("/api/fetch-url", response_model=FetchUrlResponse)
    async def fetch_url(
        payload: FetchUrlRequest,
        view_pipeline: ViewPipeline = Depends(get_pipeline),
    ):
        html = await view_pipeline.fetcher.fetch_html(payload.url or "")
        return FetchUrlResponse(html=html)

    return app


app = create_app()
