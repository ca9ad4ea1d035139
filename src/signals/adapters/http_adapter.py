# src/signals/adapters/http_adapter.py - v1
"""HTTP signal adapters over httpx.AsyncClient.

Each call is a single stateless JSON request/response against the
configured endpoint, authenticated with a Bearer key when one is set.

Wire formats:
  sentiment       POST {endpoint}          {"text"} -> {"score", "magnitude"}
  content safety  POST {endpoint}          {"text"} -> {"categories": {label: p}}
  language        POST {endpoint}          {"text"} -> {"language", "confidence"}
  image           POST {endpoint}/nsfw     {"image": b64} -> [{"label", "probability"}]
                  POST {endpoint}/objects  {"image": b64} -> [{"label", "confidence", "box"}]
                  POST {endpoint}/faces    {"image": b64} -> [{"confidence", "box", "landmarks"}]

Boxes are accepted as [x1, y1, x2, y2] or {"x1", "y1", "x2", "y2"};
landmarks as [[x, y], ...] or a flat [x, y, x, y, ...] list.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from contentguard.core.errors import AdapterFailure
from contentguard.core.models import (
    ContentSafetySignal,
    LanguageSignal,
    NsfwLabel,
    RawDetection,
    RawFace,
    SentimentSignal,
)
from contentguard.signals.base_signals import (
    BaseContentSafetyAnalyzer,
    BaseImageClassifier,
    BaseLanguageDetector,
    BaseSentimentAnalyzer,
)

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 10.0


class _JsonEndpoint:
    """Thin JSON-over-HTTP client shared by the adapters below."""

    def __init__(
        self,
        signal: str,
        endpoint: str,
        api_key: str = "",
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.signal = signal
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def open(self) -> None:
        if not self._endpoint:
            raise ValueError(f"No endpoint configured for signal '{self.signal}'")
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self._timeout_s,
            transport=self._transport,
        )

    async def post(self, payload: dict[str, Any], path: str = "") -> Any:
        if self._client is None:
            raise AdapterFailure(self.signal, "adapter not initialized")
        url = f"{self._endpoint}{path}"
        try:
            response = await self._client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise AdapterFailure(
                self.signal, f"HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise AdapterFailure(self.signal, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise AdapterFailure(self.signal, "response body is not JSON") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class HttpSentimentAnalyzer(BaseSentimentAnalyzer):
    def __init__(self, endpoint: str, api_key: str = "", **kwargs: Any) -> None:
        super().__init__()
        self._http = _JsonEndpoint("sentiment", endpoint, api_key, **kwargs)

    @property
    def provider_name(self) -> str:
        return "http"

    async def _setup(self) -> None:
        self._http.open()

    async def analyze(self, text: str) -> SentimentSignal:
        data = await self._http.post({"text": text})
        try:
            return SentimentSignal(
                score=min(max(float(data["score"]), -1.0), 1.0),
                magnitude=max(float(data.get("magnitude", 0.0)), 0.0),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise AdapterFailure("sentiment", f"malformed response: {e}") from e

    async def close(self) -> None:
        await self._http.close()
        await super().close()


class HttpContentSafetyAnalyzer(BaseContentSafetyAnalyzer):
    def __init__(self, endpoint: str, api_key: str = "", **kwargs: Any) -> None:
        super().__init__()
        self._http = _JsonEndpoint("content_safety", endpoint, api_key, **kwargs)

    @property
    def provider_name(self) -> str:
        return "http"

    async def _setup(self) -> None:
        self._http.open()

    async def analyze(self, text: str) -> ContentSafetySignal:
        data = await self._http.post({"text": text})
        categories = data.get("categories", data) if isinstance(data, dict) else None
        if not isinstance(categories, dict):
            raise AdapterFailure("content_safety", "malformed response: no categories")
        try:
            return ContentSafetySignal(
                categories={str(k): float(v) for k, v in categories.items()}
            )
        except (TypeError, ValueError) as e:
            raise AdapterFailure("content_safety", f"malformed response: {e}") from e

    async def close(self) -> None:
        await self._http.close()
        await super().close()


class HttpLanguageDetector(BaseLanguageDetector):
    def __init__(self, endpoint: str, api_key: str = "", **kwargs: Any) -> None:
        super().__init__()
        self._http = _JsonEndpoint("language", endpoint, api_key, **kwargs)

    @property
    def provider_name(self) -> str:
        return "http"

    async def _setup(self) -> None:
        self._http.open()

    async def detect(self, text: str) -> LanguageSignal:
        data = await self._http.post({"text": text})
        try:
            code = data.get("language") or data["code"]
            return LanguageSignal(
                code=str(code).lower(),
                confidence=float(data.get("confidence", 0.0)),
            )
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise AdapterFailure("language", f"malformed response: {e}") from e

    async def close(self) -> None:
        await self._http.close()
        await super().close()


class HttpImageClassifier(BaseImageClassifier):
    def __init__(self, endpoint: str, api_key: str = "", **kwargs: Any) -> None:
        super().__init__()
        self._http = _JsonEndpoint("image", endpoint, api_key, **kwargs)

    @property
    def provider_name(self) -> str:
        return "http"

    async def _setup(self) -> None:
        self._http.open()

    async def nsfw(self, image: bytes) -> list[NsfwLabel]:
        items = await self._post_image("/nsfw", image, "nsfw")
        try:
            return [
                NsfwLabel(
                    label=str(item.get("label") or item["className"]),
                    probability=float(item["probability"]),
                )
                for item in items
            ]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise AdapterFailure("nsfw", f"malformed response: {e}") from e

    async def detect_objects(self, image: bytes) -> list[RawDetection]:
        items = await self._post_image("/objects", image, "objects")
        try:
            return [
                RawDetection(
                    label=str(item.get("label") or item["class"]),
                    confidence=float(item["confidence"]),
                    box=parse_box(item.get("box", item.get("bbox"))),
                )
                for item in items
            ]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise AdapterFailure("objects", f"malformed response: {e}") from e

    async def detect_faces(self, image: bytes) -> list[RawFace]:
        items = await self._post_image("/faces", image, "faces")
        try:
            return [
                RawFace(
                    confidence=float(item["confidence"]),
                    box=parse_box(item.get("box", item.get("bbox"))),
                    landmarks=parse_landmarks(item.get("landmarks") or []),
                )
                for item in items
            ]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise AdapterFailure("faces", f"malformed response: {e}") from e

    async def _post_image(self, path: str, image: bytes, signal: str) -> list[Any]:
        payload = {"image": base64.b64encode(image).decode("ascii")}
        try:
            data = await self._http.post(payload, path)
        except AdapterFailure as e:
            raise AdapterFailure(signal, e.reason) from e
        if isinstance(data, dict):
            data = data.get("predictions", data.get("detections"))
        if not isinstance(data, list):
            raise AdapterFailure(signal, "malformed response: expected a list")
        return data

    async def close(self) -> None:
        await self._http.close()
        await super().close()


def parse_box(raw: Any) -> tuple[float, float, float, float]:
    """Corner box from a 4-item list or an x1/y1/x2/y2 mapping."""
    if isinstance(raw, dict):
        return (
            float(raw["x1"]), float(raw["y1"]), float(raw["x2"]), float(raw["y2"])
        )
    if isinstance(raw, (list, tuple)) and len(raw) == 4:
        x1, y1, x2, y2 = (float(v) for v in raw)
        return (x1, y1, x2, y2)
    raise ValueError(f"unrecognized box format: {raw!r}")


def parse_landmarks(raw: list[Any]) -> list[tuple[float, float]]:
    """Landmarks from (x, y) pairs or a flat coordinate list."""
    if raw and all(isinstance(p, (list, tuple)) for p in raw):
        return [(float(p[0]), float(p[1])) for p in raw]
    flat = [float(v) for v in raw]
    if len(flat) % 2:
        raise ValueError("flat landmark list has an odd number of coordinates")
    return list(zip(flat[0::2], flat[1::2]))
