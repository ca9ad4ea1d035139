# src/analysis/aggregator.py - v1
"""Pure verdict aggregation over typed signal outputs.

Nothing here does I/O: the pipeline runs the fan-out, then hands each
signal (or None when the signal is missing) to aggregate_text() or
aggregate_image().

Toxicity uses a fixed linear mapping from the content-safety "negative"
confidence n: hate = 0.8n, harassment = 0.6n, threat = 0.7n, and
profanity comes straight from the profanity analyzer. Changing these
coefficients changes verdicts and needs re-validation.
"""

from __future__ import annotations

from contentguard.core.models import (
    BoundingBox,
    Classification,
    ContentSafetySignal,
    FaceDetection,
    FacesResult,
    ImageAnalysisResult,
    ImageMetadata,
    LanguageSignal,
    LanguageVerdict,
    NsfwCategories,
    NsfwLabel,
    NsfwPrediction,
    NsfwResult,
    ObjectDetection,
    Point,
    ProfanityResult,
    RawDetection,
    RawFace,
    SentimentSignal,
    SentimentVerdict,
    SpamAnalysisResult,
    TextModerationResult,
    Toxicity,
    ToxicityCategories,
)

HATE_COEFFICIENT = 0.8
HARASSMENT_COEFFICIENT = 0.6
THREAT_COEFFICIENT = 0.7

POSITIVE_SENTIMENT_ABOVE = 0.2
NEGATIVE_SENTIMENT_BELOW = -0.2

UNKNOWN_LANGUAGE = "unknown"
DEFAULT_CONFIDENCE_FLOOR = 0.5

# Raw classifier label -> verdict category; each category keeps the max.
NSFW_LABEL_MAP: dict[str, str] = {
    "porn": "adult",
    "hentai": "adult",
    "sexy": "suggestive",
    "violence": "violence",
    "gore": "violence",
    "hate": "hate",
    "hateful": "hate",
}


def sentiment_label(score: float) -> str:
    """Strict inequalities: exactly +/-0.2 is neutral."""
    if score > POSITIVE_SENTIMENT_ABOVE:
        return "positive"
    if score < NEGATIVE_SENTIMENT_BELOW:
        return "negative"
    return "neutral"


def aggregate_text(
    *,
    profanity: ProfanityResult,
    spam: SpamAnalysisResult,
    sentiment: SentimentSignal | None,
    language: LanguageSignal | None,
    content_safety: ContentSafetySignal | None,
    missing_signals: list[str] | None = None,
) -> TextModerationResult:
    """Combine text signals into one verdict.

    Missing remote signals fall back to neutral defaults: sentiment 0,
    language "unknown", content-safety negative 0 with no classifications.
    """
    negative = _unit(content_safety.negative) if content_safety else 0.0

    classifications = []
    if content_safety is not None:
        classifications = [
            Classification(category=label, confidence=_unit(confidence))
            for label, confidence in content_safety.categories.items()
        ]

    if sentiment is not None:
        sentiment_verdict = SentimentVerdict(
            score=sentiment.score,
            magnitude=sentiment.magnitude,
            label=sentiment_label(sentiment.score),
        )
    else:
        sentiment_verdict = SentimentVerdict(score=0.0, magnitude=0.0, label="neutral")

    if language is not None:
        language_verdict = LanguageVerdict(
            detected=language.code, confidence=language.confidence
        )
    else:
        language_verdict = LanguageVerdict(detected=UNKNOWN_LANGUAGE, confidence=0.0)

    return TextModerationResult(
        classifications=classifications,
        toxicity=Toxicity(
            score=negative,
            categories=ToxicityCategories(
                hate=HATE_COEFFICIENT * negative,
                harassment=HARASSMENT_COEFFICIENT * negative,
                profanity=profanity.score,
                threat=THREAT_COEFFICIENT * negative,
            ),
        ),
        sentiment=sentiment_verdict,
        spam=spam,
        language=language_verdict,
        missing_signals=sorted(missing_signals or []),
    )


def normalize_bbox(box: tuple[float, float, float, float]) -> BoundingBox:
    """Corner format (x1, y1, x2, y2) -> (x, y, width, height)."""
    x1, y1, x2, y2 = box
    return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def aggregate_nsfw(labels: list[NsfwLabel] | None) -> NsfwResult:
    if not labels:
        return NsfwResult()

    categories = {name: 0.0 for name in NsfwCategories.model_fields}
    for item in labels:
        category = NSFW_LABEL_MAP.get(item.label.lower())
        if category is not None:
            categories[category] = max(categories[category], item.probability)

    return NsfwResult(
        score=max(categories.values()),
        categories=NsfwCategories(**categories),
        predictions=[
            NsfwPrediction(category=item.label, confidence=item.probability)
            for item in labels
        ],
    )


def aggregate_image(
    *,
    metadata: ImageMetadata,
    nsfw: list[NsfwLabel] | None,
    objects: list[RawDetection] | None,
    faces: list[RawFace] | None,
    confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
    missing_signals: list[str] | None = None,
) -> ImageAnalysisResult:
    """Combine image signals into one verdict.

    Detections below ``confidence_floor`` are dropped; a detection exactly
    at the floor is kept.
    """
    kept_objects = [
        ObjectDetection(
            class_=det.label,
            confidence=det.confidence,
            bbox=normalize_bbox(det.box),
        )
        for det in objects or []
        if det.confidence >= confidence_floor
    ]

    kept_faces = [
        FaceDetection(
            confidence=face.confidence,
            bbox=normalize_bbox(face.box),
            landmarks=[Point(x=x, y=y) for x, y in face.landmarks],
        )
        for face in faces or []
        if face.confidence >= confidence_floor
    ]

    return ImageAnalysisResult(
        nsfw=aggregate_nsfw(nsfw),
        objects=kept_objects,
        faces=FacesResult(count=len(kept_faces), detections=kept_faces),
        metadata=metadata,
        missing_signals=sorted(missing_signals or []),
    )


def _unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)
