from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from altviews.errors import ViewValidationError

MIN_VIEWS = 1
MAX_VIEWS = 6

_HTTP_URL = TypeAdapter(AnyHttpUrl)


class View(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = Field(min_length=1)
    subtitle: str | None = None
    content: str = Field(min_length=1)
    imageUrl: str | None = None
    imageGenerationPrompt: str = Field(min_length=1)

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        _HTTP_URL.validate_python(value)
        return value


def is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        return False
    return True


def _coerce_id(value: Any, index: int) -> int:
    if isinstance(value, bool):
        return index + 1
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return index + 1


def _coerce_text(default: Callable[[int], str | None]) -> Callable[[Any, int], str | None]:
    def coerce(value: Any, index: int) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return default(index)

    return coerce


# field -> (rule applied to the raw value, falling back to the default)
VIEW_DEFAULTS: dict[str, Callable[[Any, int], Any]] = {
    "id": _coerce_id,
    "title": _coerce_text(lambda index: f"Alternative Perspective {index + 1}"),
    "subtitle": _coerce_text(lambda index: None),
    "content": _coerce_text(lambda index: "A unique perspective on the topic."),
    "imageGenerationPrompt": _coerce_text(lambda index: f"Symbolic representation {index + 1}"),
}


def normalize_view(item: dict[str, Any], index: int) -> View:
    """Apply the default table to one raw LLM object.

    ``imageUrl`` from the model is ignored: the image stage owns that field.
    """
    fields = {name: rule(item.get(name), index) for name, rule in VIEW_DEFAULTS.items()}
    try:
        return View(**fields)
    except ValidationError as exc:
        raise ViewValidationError(
            f"View {index + 1} failed validation after applying defaults",
            kind="internal",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc


def normalize_views(items: Any, *, raw_content: str | None = None) -> list[View]:
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        raise ViewValidationError(
            "Expected a JSON array of views",
            kind="upstream",
            raw_content=raw_content,
        )
    if len(items) < MIN_VIEWS or len(items) > MAX_VIEWS:
        raise ViewValidationError(
            f"Expected between {MIN_VIEWS} and {MAX_VIEWS} views, got {len(items)}",
            kind="upstream",
            raw_content=raw_content,
        )

    views: list[View] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ViewValidationError(
                f"View {index + 1} is not a JSON object",
                kind="upstream",
                raw_content=raw_content,
            )
        views.append(normalize_view(item, index))
    return views
