from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from altviews.views import View


class GenerateViewsRequest(BaseModel):
    url: str | None = None
    text: str | None = None
    generateImages: bool | None = None

    @model_validator(mode="after")
    def validate_source(self) -> "GenerateViewsRequest":
        has_url = bool(self.url and self.url.strip())
        has_text = bool(self.text and self.text.strip())
        if has_url == has_text:
            raise ValueError("Exactly one of url or text is required")
        return self


class GenerateViewsResponse(BaseModel):
    views: list[View]


class GenerateImageRequest(BaseModel):
    prompt: str | None = None


class GenerateImageResponse(BaseModel):
    imageUrl: str
    allImageUrls: list[str]
    generationId: str | None = None
    attempts: int


class RunwareImageRequest(BaseModel):
    prompt: str | None = None
    width: int | None = Field(default=None, ge=64, le=2048)
    height: int | None = Field(default=None, ge=64, le=2048)
    model: str | None = None
    numberResults: int = Field(default=1, ge=1, le=4)


class RunwareImage(BaseModel):
    imageUrl: str
    imageUUID: str | None = None
    seed: int | None = None


class RunwareImageResponse(BaseModel):
    imageUrl: str
    allImages: list[RunwareImage]


class FetchUrlRequest(BaseModel):
    url: str | None = None


class FetchUrlResponse(BaseModel):
    html: str
