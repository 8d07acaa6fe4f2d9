from __future__ import annotations

from typing import Any, Literal


class AltViewsError(RuntimeError):
    """Base error carrying the HTTP status and the caller-facing payload."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def public_payload(self, *, expose_details: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InputError(AltViewsError):
    status_code = 400


class ConfigurationError(AltViewsError):
    """A required credential or setting is missing.

    The specific setting name stays in ``missing_setting`` for server-side
    logs; callers only see a generic message.
    """

    status_code = 503

    def __init__(self, service: str, *, missing_setting: str) -> None:
        super().__init__(f"{service} is not configured")
        self.service = service
        self.missing_setting = missing_setting


class UpstreamError(AltViewsError):
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        upstream_status: int | None = None,
        upstream_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def public_payload(self, *, expose_details: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if expose_details:
            payload["details"] = {
                "provider": self.provider,
                "status": self.upstream_status,
                "body": self.upstream_body,
            }
        return payload


class ParseError(AltViewsError):
    status_code = 502

    def __init__(self, message: str, *, raw_content: str, attempts: list[dict[str, str]] | None = None) -> None:
        super().__init__(message, details={"rawContent": raw_content, "attempts": attempts or []})
        self.raw_content = raw_content
        self.attempts = attempts or []


ValidationKind = Literal["upstream", "internal"]


class ViewValidationError(AltViewsError):
    """Raised when LLM output cannot be turned into view records.

    ``kind="upstream"`` means the model returned a malformed response;
    ``kind="internal"`` means a record failed the schema after defaults were
    applied, which points at a bug in normalization.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ValidationKind,
        raw_content: str | None = None,
        errors: list[Any] | None = None,
    ) -> None:
        details: dict[str, Any] = {"kind": kind}
        if raw_content is not None:
            details["rawContent"] = raw_content
        if errors:
            details["errors"] = errors
        super().__init__(
            message,
            status_code=502 if kind == "upstream" else 500,
            details=details,
        )
        self.kind = kind
        self.raw_content = raw_content
        self.errors = errors or []


class ImageGenerationError(AltViewsError):
    """Hard failure of a standalone image request (exhausted or failed)."""

    def __init__(self, message: str, *, exhausted: bool, attempts: int, reason: str | None = None) -> None:
        details: dict[str, Any] = {"attempts": attempts}
        if reason:
            details["reason"] = reason
        super().__init__(message, status_code=504 if exhausted else 502, details=details)
        self.exhausted = exhausted
        self.attempts = attempts
