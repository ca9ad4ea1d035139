# src/analysis/spam.py - v1
"""Heuristic spam detector with a configurable threshold and weighting surface.

Four sub-signal groups are measured independently:
  - repetition: runs of >= 5 identical characters, immediately repeated
    words, runs of >= 3 punctuation marks
  - formatting: all caps (texts over 10 chars), >= 3-char whitespace
    runs, lines over 200 chars
  - links: URL count, URL count / character count, URL reputation
  - patterns: keyword-pattern density (matches / words) for monetization,
    urgency and deception

Each group is mapped to a score in [0, 1]:
  repetition = min(1, total repetition runs / 5)
  formatting = min(1, 0.5 * all_caps + 0.1 * spacing runs + 0.2 * long lines)
  links      = max(min(1, density / link density threshold), suspicious)
  patterns   = min(1, monetization + urgency + deception)

The spam score is the weighted mean of the four group scores. Changing a
weight or a mapping above changes verdicts and needs re-validation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from contentguard.core.models import (
    FormattingIndicators,
    LinkIndicators,
    PatternIndicators,
    RepetitionIndicators,
    SpamAnalysisResult,
    SpamIndicators,
    SpamSubScores,
)

logger = logging.getLogger(__name__)

_CHARACTER_RUN_RE = re.compile(r"(.)\1{4,}")
_REPEATED_WORD_RE = re.compile(r"\b(\w+)\b(?:\s+\1\b)+")
_PUNCTUATION_RUN_RE = re.compile(r"[!?.]{3,}")
_WHITESPACE_RUN_RE = re.compile(r"\s{3,}")
_URL_RE = re.compile(r"https?://[^\s]+")

_REPETITION_SATURATION = 5
_LONG_LINE_CHARS = 200

# Best-effort URL reputation: URLs -> suspicion score in [0, 1].
UrlReputationCheck = Callable[[list[str]], float]


def no_url_reputation(urls: list[str]) -> float:  # noqa: ARG001
    return 0.0


@dataclass(frozen=True)
class SpamThresholds:
    spam: float = 0.7
    repetition: float = 0.3
    link_density: float = 0.1
    monetization: float = 0.4
    urgency: float = 0.3
    deception: float = 0.3


@dataclass(frozen=True)
class SpamWeights:
    repetition: float = 0.20
    formatting: float = 0.15
    links: float = 0.30
    patterns: float = 0.35

    @property
    def total(self) -> float:
        return self.repetition + self.formatting + self.links + self.patterns


@dataclass(frozen=True)
class SpamConfig:
    """Thresholds, weights and keyword patterns for the spam detector."""

    thresholds: SpamThresholds = field(default_factory=SpamThresholds)
    weights: SpamWeights = field(default_factory=SpamWeights)
    monetization_patterns: tuple[str, ...] = ()
    urgency_patterns: tuple[str, ...] = ()
    deception_patterns: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings) -> SpamConfig:  # noqa: ANN001
        return cls(
            thresholds=SpamThresholds(
                spam=settings.spam_threshold,
                repetition=settings.spam_repetition_threshold,
                link_density=settings.spam_link_density_threshold,
                monetization=settings.spam_monetization_threshold,
                urgency=settings.spam_urgency_threshold,
                deception=settings.spam_deception_threshold,
            ),
            weights=SpamWeights(
                repetition=settings.spam_weight_repetition,
                formatting=settings.spam_weight_formatting,
                links=settings.spam_weight_links,
                patterns=settings.spam_weight_patterns,
            ),
            monetization_patterns=tuple(settings.spam_monetization_patterns),
            urgency_patterns=tuple(settings.spam_urgency_patterns),
            deception_patterns=tuple(settings.spam_deception_patterns),
        )


class SpamAnalyzer:
    """Pure, synchronous spam scorer.

    Args:
        config: Thresholds, weights and keyword patterns.
        url_reputation: Best-effort reputation check; failures count as 0.
    """

    def __init__(
        self,
        config: SpamConfig | None = None,
        url_reputation: UrlReputationCheck = no_url_reputation,
    ) -> None:
        self._config = config or SpamConfig()
        if self._config.weights.total <= 0:
            raise ValueError("spam weights must not all be zero")
        self._url_reputation = url_reputation
        self._monetization = _compile(self._config.monetization_patterns)
        self._urgency = _compile(self._config.urgency_patterns)
        self._deception = _compile(self._config.deception_patterns)

    def analyze(self, text: str) -> SpamAnalysisResult:
        repetition = self._repetition(text)
        formatting = self._formatting(text)
        links = self._links(text)
        patterns = self._patterns(text)
        scores = self._sub_scores(repetition, formatting, links, patterns)
        score = self._combine(scores)

        return SpamAnalysisResult(
            is_spam=score > self._config.thresholds.spam,
            confidence=score,
            categories=self._categorize(repetition, links, patterns),
            indicators=SpamIndicators(
                repetition=repetition,
                formatting=formatting,
                links=links,
                patterns=patterns,
                scores=scores,
            ),
        )

    # --- Indicators ---

    @staticmethod
    def _repetition(text: str) -> RepetitionIndicators:
        return RepetitionIndicators(
            characters=_count(_CHARACTER_RUN_RE, text),
            words=_count(_REPEATED_WORD_RE, text),
            punctuation=_count(_PUNCTUATION_RUN_RE, text),
        )

    @staticmethod
    def _formatting(text: str) -> FormattingIndicators:
        return FormattingIndicators(
            all_caps=len(text) > 10 and text.isupper(),
            excessive_spacing=_count(_WHITESPACE_RUN_RE, text),
            long_lines=sum(1 for line in text.split("\n") if len(line) > _LONG_LINE_CHARS),
        )

    def _links(self, text: str) -> LinkIndicators:
        urls = _URL_RE.findall(text)
        return LinkIndicators(
            count=len(urls),
            density=len(urls) / len(text) if text else 0.0,
            suspicious=self._check_reputation(urls) if urls else 0.0,
        )

    def _patterns(self, text: str) -> PatternIndicators:
        word_count = len(text.split())
        return PatternIndicators(
            monetization=_density(self._monetization, text, word_count),
            urgency=_density(self._urgency, text, word_count),
            deception=_density(self._deception, text, word_count),
        )

    def _check_reputation(self, urls: list[str]) -> float:
        try:
            return min(max(float(self._url_reputation(urls)), 0.0), 1.0)
        except Exception:
            logger.warning("URL reputation check failed, ignoring", exc_info=True)
            return 0.0

    # --- Scoring ---

    def _sub_scores(
        self,
        repetition: RepetitionIndicators,
        formatting: FormattingIndicators,
        links: LinkIndicators,
        patterns: PatternIndicators,
    ) -> SpamSubScores:
        link_threshold = self._config.thresholds.link_density
        if link_threshold > 0:
            density_score = min(links.density / link_threshold, 1.0)
        else:
            density_score = 1.0 if links.count else 0.0

        return SpamSubScores(
            repetition=min(repetition.total / _REPETITION_SATURATION, 1.0),
            formatting=min(
                0.5 * formatting.all_caps
                + 0.1 * formatting.excessive_spacing
                + 0.2 * formatting.long_lines,
                1.0,
            ),
            links=max(density_score, links.suspicious),
            patterns=min(patterns.monetization + patterns.urgency + patterns.deception, 1.0),
        )

    def _combine(self, scores: SpamSubScores) -> float:
        w = self._config.weights
        weighted = (
            w.repetition * scores.repetition
            + w.formatting * scores.formatting
            + w.links * scores.links
            + w.patterns * scores.patterns
        )
        return min(weighted / w.total, 1.0)

    def _categorize(
        self,
        repetition: RepetitionIndicators,
        links: LinkIndicators,
        patterns: PatternIndicators,
    ) -> list[str]:
        t = self._config.thresholds
        categories: list[str] = []
        if repetition.characters > t.repetition:
            categories.append("excessive_repetition")
        if links.density > t.link_density:
            categories.append("excessive_links")
        if patterns.monetization > t.monetization:
            categories.append("promotional")
        if patterns.urgency > t.urgency:
            categories.append("artificial_urgency")
        if patterns.deception > t.deception:
            categories.append("potential_scam")
        return categories


def _compile(patterns: tuple[str, ...]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def _count(pattern: re.Pattern[str], text: str) -> int:
    return sum(1 for _ in pattern.finditer(text))


def _density(patterns: list[re.Pattern[str]], text: str, word_count: int) -> float:
    if word_count == 0:
        return 0.0
    return sum(_count(p, text) for p in patterns) / word_count
