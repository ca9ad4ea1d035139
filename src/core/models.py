# src/core/models.py - v2
"""Core domain models: fingerprints, signal outputs, verdicts and stored records.

Signal models (``*Signal``, ``Raw*``) are what the remote adapters hand to
the aggregator. Verdict models (``TextModerationResult``,
``ImageAnalysisResult``) are what callers receive and what the cache and
store persist. Every confidence is a float in [0, 1]; sentiment scores
live in [-1, 1].
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["text", "image"]
SUPPORTED_CONTENT_TYPES: tuple[str, ...] = ("text", "image")

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]


# === Fingerprint ===


class ContentFingerprint(BaseModel):
    """SHA-256 digest of the canonical bytes of one piece of content."""

    model_config = ConfigDict(frozen=True)

    digest: str = Field(min_length=64, max_length=64)
    content_type: ContentType

    @property
    def hex(self) -> str:
        return self.digest


# === Remote signal outputs ===


class SentimentSignal(BaseModel):
    """Document sentiment from the sentiment adapter."""

    score: float = Field(ge=-1.0, le=1.0)
    magnitude: float = Field(ge=0.0)


class LanguageSignal(BaseModel):
    """Detected language (ISO 639-1 code) from the language adapter."""

    code: str
    confidence: UnitFloat


class ContentSafetySignal(BaseModel):
    """Label -> confidence map from the content-safety adapter."""

    categories: dict[str, float] = Field(default_factory=dict)

    @property
    def negative(self) -> float:
        return self.categories.get("negative", 0.0)


class NsfwLabel(BaseModel):
    """One raw NSFW classifier prediction."""

    label: str
    probability: UnitFloat


class RawDetection(BaseModel):
    """Object detection in corner format (x1, y1, x2, y2)."""

    label: str
    confidence: UnitFloat
    box: tuple[float, float, float, float]


class RawFace(BaseModel):
    """Face detection in corner format with (x, y) landmark pairs."""

    confidence: UnitFloat
    box: tuple[float, float, float, float]
    landmarks: list[tuple[float, float]] = Field(default_factory=list)


# === Local text analyzer outputs ===


class ProfanityResult(BaseModel):
    """Output of the profanity analyzer.

    ``score`` is a heuristic normalization (severity sum over three times
    the token count), not a probability.
    """

    score: UnitFloat
    matches: dict[str, int] = Field(default_factory=dict)
    severity: float = 0.0
    contains_profanity: bool = False


class RepetitionIndicators(BaseModel):
    characters: int = 0
    words: int = 0
    punctuation: int = 0

    @property
    def total(self) -> int:
        return self.characters + self.words + self.punctuation


class FormattingIndicators(BaseModel):
    all_caps: bool = False
    excessive_spacing: int = 0
    long_lines: int = 0


class LinkIndicators(BaseModel):
    count: int = 0
    density: float = 0.0
    suspicious: UnitFloat = 0.0


class PatternIndicators(BaseModel):
    monetization: float = 0.0
    urgency: float = 0.0
    deception: float = 0.0


class SpamSubScores(BaseModel):
    """Per-group scores in [0, 1] feeding the weighted spam score."""

    repetition: UnitFloat = 0.0
    formatting: UnitFloat = 0.0
    links: UnitFloat = 0.0
    patterns: UnitFloat = 0.0


class SpamIndicators(BaseModel):
    repetition: RepetitionIndicators = Field(default_factory=RepetitionIndicators)
    formatting: FormattingIndicators = Field(default_factory=FormattingIndicators)
    links: LinkIndicators = Field(default_factory=LinkIndicators)
    patterns: PatternIndicators = Field(default_factory=PatternIndicators)
    scores: SpamSubScores = Field(default_factory=SpamSubScores)


class SpamAnalysisResult(BaseModel):
    is_spam: bool
    confidence: UnitFloat
    categories: list[str] = Field(default_factory=list)
    indicators: SpamIndicators = Field(default_factory=SpamIndicators)


# === Text verdict ===


class Classification(BaseModel):
    category: str
    confidence: UnitFloat


class ToxicityCategories(BaseModel):
    hate: UnitFloat
    harassment: UnitFloat
    profanity: UnitFloat
    threat: UnitFloat


class Toxicity(BaseModel):
    score: UnitFloat
    categories: ToxicityCategories


class SentimentVerdict(BaseModel):
    score: float = Field(ge=-1.0, le=1.0)
    magnitude: float = Field(ge=0.0)
    label: Literal["positive", "negative", "neutral"]


class LanguageVerdict(BaseModel):
    detected: str
    confidence: UnitFloat


class TextModerationResult(BaseModel):
    """Unified verdict for a piece of text."""

    classifications: list[Classification] = Field(default_factory=list)
    toxicity: Toxicity
    sentiment: SentimentVerdict
    spam: SpamAnalysisResult
    language: LanguageVerdict
    missing_signals: list[str] = Field(default_factory=list)


# === Image verdict ===


class BoundingBox(BaseModel):
    x: float
    y: float
    width: float
    height: float


class Point(BaseModel):
    x: float
    y: float


class NsfwCategories(BaseModel):
    adult: float = 0.0
    suggestive: float = 0.0
    violence: float = 0.0
    hate: float = 0.0


class NsfwPrediction(BaseModel):
    category: str
    confidence: UnitFloat


class NsfwResult(BaseModel):
    score: UnitFloat = 0.0
    categories: NsfwCategories = Field(default_factory=NsfwCategories)
    predictions: list[NsfwPrediction] = Field(default_factory=list)


class ObjectDetection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_: str = Field(alias="class")
    confidence: UnitFloat
    bbox: BoundingBox


class FaceDetection(BaseModel):
    confidence: UnitFloat
    bbox: BoundingBox
    landmarks: list[Point] = Field(default_factory=list)


class FacesResult(BaseModel):
    count: int = 0
    detections: list[FaceDetection] = Field(default_factory=list)


class Dimensions(BaseModel):
    width: int
    height: int


class ImageMetadata(BaseModel):
    dimensions: Dimensions
    format: str
    size: int


class ImageAnalysisResult(BaseModel):
    """Unified verdict for an image."""

    nsfw: NsfwResult = Field(default_factory=NsfwResult)
    objects: list[ObjectDetection] = Field(default_factory=list)
    faces: FacesResult = Field(default_factory=FacesResult)
    metadata: ImageMetadata
    missing_signals: list[str] = Field(default_factory=list)


ModerationResult = Union[TextModerationResult, ImageAnalysisResult]

_RESULT_TYPES: dict[str, type[BaseModel]] = {
    "text": TextModerationResult,
    "image": ImageAnalysisResult,
}


def dump_result(result: ModerationResult) -> dict[str, Any]:
    """JSON-safe payload used by both cache tiers."""
    return result.model_dump(mode="json", by_alias=True)


def parse_result(content_type: str, payload: dict[str, Any]) -> ModerationResult:
    """Rebuild the typed verdict for a content type from a stored payload."""
    model = _RESULT_TYPES[content_type]
    return model.model_validate(payload)  # type: ignore[return-value]


# === Durable record ===


class ClassificationRecord(BaseModel):
    """Authoritative, append-only record: one per (fingerprint, content type)."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    content_type: ContentType
    result: dict[str, Any]
    created_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    def typed_result(self) -> ModerationResult:
        return parse_result(self.content_type, self.result)
