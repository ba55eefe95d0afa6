"""
Typed provider failures

Run and workflow sources surface provider-side problems as ProviderError
subclasses so callers can tell "the provider refused" apart from "zero runs".
"""

from collections.abc import Mapping
from typing import Any


class ProviderError(Exception):
    """Base class for failures reported by a run or workflow source."""

    def __init__(self, repository: str, detail: str, status_code: int | None = None):
        self.repository = repository
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{repository}: {detail}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "repository": self.repository,
            "statusCode": self.status_code,
            "detail": self.detail,
        }


class RateLimitedError(ProviderError):
    """Provider rate limit exhausted (HTTP 429, or 403 with zero remaining)."""

    def __init__(
        self,
        repository: str,
        detail: str = "Rate limit exceeded",
        status_code: int | None = 429,
        reset_at: int | None = None,
    ):
        super().__init__(repository, detail, status_code)
        self.reset_at = reset_at


class NotFoundError(ProviderError):
    """Repository or resource does not exist (HTTP 404)."""


class AccessDeniedError(ProviderError):
    """Credentials rejected or SSO authorization required (HTTP 401/403)."""


class ProviderUnavailableError(ProviderError):
    """Provider unreachable or failing (5xx, network errors, unexpected responses)."""


def _header(headers: Mapping[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def provider_error_from_response(
    status_code: int,
    body: str,
    headers: Mapping[str, str] | None,
    repository: str,
) -> ProviderError:
    """
    Map a failed provider HTTP response to a typed ProviderError.

    Args:
        status_code: HTTP status of the failed response
        body: Response body text (used for rate limit detection)
        headers: Response headers (case-insensitive lookup)
        repository: "owner/name" the request was for

    Returns:
        The matching ProviderError subclass instance

    Example:
        if response.status_code >= 400:
            raise provider_error_from_response(
                response.status_code, response.text, response.headers, "octo/repo"
            )
    """
    headers = headers or {}
    remaining = _header(headers, "X-RateLimit-Remaining")
    body_text = body or ""

    if status_code == 429 or (status_code == 403 and (remaining == "0" or "rate limit" in body_text.lower())):
        reset = _header(headers, "X-RateLimit-Reset")
        return RateLimitedError(
            repository,
            status_code=status_code,
            reset_at=int(reset) if reset and reset.isdigit() else None,
        )

    if status_code == 404:
        return NotFoundError(repository, "Repository or resource not found", status_code)

    if status_code in (401, 403):
        if _header(headers, "X-GitHub-SSO"):
            return AccessDeniedError(repository, "SSO authorization required for this token", status_code)
        return AccessDeniedError(repository, "Access denied", status_code)

    detail = body_text.strip()[:200] or f"Provider returned HTTP {status_code}"
    return ProviderUnavailableError(repository, detail, status_code)
