"""HTTP client for the text-generation backend.

Every generation kind maps to one POST endpoint that answers with two ranked
alternatives (a "safe" and a "bold" one).  Failures are normalised into the
:class:`AIServiceError` hierarchy so callers only ever deal with one
exception family and a user-facing message.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from wandboard.i18n import t
from wandboard.operations import GenerationRequest, RequestKind

logger = logging.getLogger(__name__)

# Kinds whose endpoints may still answer in the legacy ``{"result": str}`` shape.
_LEGACY_RESULT_KINDS = frozenset({RequestKind.TONE, RequestKind.LENGTH, RequestKind.PHOTO})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AIServiceError(Exception):
    """Base class for every failure a generation call can produce."""

    @property
    def message(self) -> str:
        return t("error.generic")

    def __str__(self) -> str:
        return self.message


class NetworkError(AIServiceError):
    """No connectivity or the connection dropped mid-request."""

    @property
    def message(self) -> str:
        return t("error.network")


class ServiceUnavailable(AIServiceError):
    """The backend answered with a failure (or did not answer in time)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self._message = message

    @property
    def message(self) -> str:
        return self._message


class InvalidResponse(AIServiceError):
    """The backend answered 2xx but the body is unusable."""

    @property
    def message(self) -> str:
        return t("error.invalid_response")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class AIServiceClient:
    """Synchronous client; run it on a worker thread, never on the UI thread."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        traits_loader: Callable[[], list[str]] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend root (e.g. "http://127.0.0.1:3000").
            timeout: Upper bound in seconds for a whole request.
            traits_loader: Optional callable returning personality traits
                sent with plain generation requests.
            transport: Optional httpx transport (used by tests).
        """
        self._base_url = base_url.rstrip("/")
        self._traits_loader = traits_loader
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, request: GenerationRequest) -> tuple[str, str]:
        """Issue *request* and return the ``(safe, bold)`` alternatives.

        Raises:
            NetworkError: Transport failure.
            ServiceUnavailable: Non-2xx answer or timeout.
            InvalidResponse: Malformed body or fewer than two alternatives.
        """
        endpoint = request.kind.endpoint
        body = self._build_body(request)

        try:
            response = self._client.post(endpoint, json=body)
        except httpx.TimeoutException as exc:
            logger.error("%s timed out: %s", endpoint, exc)
            raise ServiceUnavailable(t("error.timeout")) from exc
        except httpx.TransportError as exc:
            logger.error("%s transport error: %s", endpoint, exc)
            raise NetworkError() from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("%s HTTP error %s: %s", endpoint, status, exc.response.text[:500])
            backend_message = _parse_backend_error(exc.response)
            raise ServiceUnavailable(
                backend_message or t("error.http", status=status)
            ) from exc

        alternatives = self._parse_alternatives(request.kind, response)
        logger.info("%s -> %d alternatives", endpoint, len(alternatives))
        return alternatives[0], alternatives[1]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _build_body(self, request: GenerationRequest) -> dict[str, Any]:
        previous = list(request.previous_outputs)
        kind = request.kind

        if kind is RequestKind.NORMAL:
            traits = self._traits_loader() if self._traits_loader else []
            return {
                "incoming": "",
                "reply": request.text,
                "traits": traits,
                "previousOutputs": previous,
            }

        if kind is RequestKind.PHOTO:
            body: dict[str, Any] = {
                "photos": list(request.photos),
                "context": request.context,
                "previousMessages": previous,
            }
        elif kind is RequestKind.TONE:
            body = {"text": request.text, "tones": list(request.tones)}
        elif kind is RequestKind.LENGTH:
            body = {"text": request.text, "length": request.length}
        else:
            body = {"text": request.text}

        if kind is not RequestKind.PHOTO:
            body["previousOutputs"] = previous
        if kind is not RequestKind.TONE and request.tones:
            body["tones"] = list(request.tones)
        if kind not in (RequestKind.TONE, RequestKind.LENGTH) and request.length:
            body["length"] = request.length
        return body

    def _parse_alternatives(self, kind: RequestKind, response: httpx.Response) -> list[str]:
        try:
            data = response.json()
        except ValueError as exc:
            # ValueError covers json.JSONDecodeError (empty / invalid body)
            body_preview = response.text[:500] if response.text else "(empty)"
            logger.error("Malformed backend response (body: %s): %s", body_preview, exc)
            raise InvalidResponse() from exc

        if not isinstance(data, dict):
            raise InvalidResponse()

        alternatives = data.get("alternatives")
        if isinstance(alternatives, list):
            texts = [a for a in alternatives if isinstance(a, str)]
            if len(texts) >= 2:
                return texts[:2]

        result = data.get("result")
        if kind in _LEGACY_RESULT_KINDS and isinstance(result, str):
            logger.warning("%s answered in legacy single-result format", kind.endpoint)
            return [result, result]

        logger.error("Backend response missing two alternatives: %r", data)
        raise InvalidResponse()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()


def _parse_backend_error(response: httpx.Response) -> str | None:
    """Extract the backend's ``error``/``message`` field, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in ("error", "message"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None
