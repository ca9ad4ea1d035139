# src/analysis/profanity.py - v1
"""Profanity analyzer: vocabulary and pattern matching over a static rule table.

Scoring:
  - tokens are runs of two or more word characters of the lowercased text
  - every vocabulary hit adds its severity (default 1) to the severity sum
  - every regex pattern hit counts as a match but adds no severity
  - score = severity_sum / (token_count * 3), clamped to 1

The score is a heuristic normalization, not a probability.
"""

from __future__ import annotations

import re
from collections import Counter

from contentguard.config.profanity_rules import DEFAULT_PROFANITY_RULES, ProfanityRules
from contentguard.core.models import ProfanityResult

_TOKEN_RE = re.compile(r"\b\w\w+\b")

# Highest severity level in the rule table scale.
_MAX_SEVERITY = 3


class ProfanityAnalyzer:
    """Pure, synchronous profanity scorer."""

    def __init__(self, rules: ProfanityRules = DEFAULT_PROFANITY_RULES) -> None:
        self._rules = rules
        self._patterns = [re.compile(p, re.IGNORECASE) for p in rules.patterns]

    def analyze(self, text: str) -> ProfanityResult:
        tokens = tokenize(text)
        matches: Counter[str] = Counter()
        severity_sum = 0

        for token in tokens:
            if token in self._rules.words:
                matches[token] += 1
                severity_sum += self._rules.severity_of(token)

        match_count = sum(matches.values())
        for pattern in self._patterns:
            match_count += sum(1 for _ in pattern.finditer(text))

        if match_count == 0 or not tokens:
            score = 0.0
        else:
            score = min(severity_sum / (len(tokens) * _MAX_SEVERITY), 1.0)

        return ProfanityResult(
            score=score,
            matches=dict(matches),
            severity=severity_sum / max(match_count, 1),
            contains_profanity=match_count > 0,
        )


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of length >= 2."""
    return _TOKEN_RE.findall(text.lower())
