# src/config/profanity_rules.py - v1
"""Static profanity rule table: vocabulary, per-word severity, regex patterns.

The table is loaded once at startup, either from a JSON file
(``{"words": [...], "severity_levels": {...}, "patterns": [...]}``)
or from the built-in default below.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from contentguard.config.settings import ConfigurationError

logger = logging.getLogger(__name__)


class ProfanityRules(BaseModel):
    """Vocabulary, severity map and obfuscation patterns."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    words: frozenset[str]
    severity_levels: dict[str, int] = Field(
        default_factory=dict, alias="severityLevels"
    )
    patterns: tuple[str, ...] = ()

    @field_validator("words", mode="before")
    @classmethod
    def lowercase_words(cls, v: object) -> frozenset[str]:  # noqa: N805
        return frozenset(str(w).lower() for w in v)  # type: ignore[union-attr]

    @field_validator("patterns")
    @classmethod
    def validate_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:  # noqa: N805
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid profanity pattern {pattern!r}: {e}") from e
        return v

    def severity_of(self, word: str) -> int:
        """Severity for a vocabulary hit; unclassified words weigh 1."""
        return self.severity_levels.get(word, 1)


DEFAULT_PROFANITY_RULES = ProfanityRules(
    words=frozenset(
        {
            "damn", "hell", "crap", "piss", "bastard", "bitch",
            "shit", "dick", "asshole", "fuck", "motherfucker",
        }
    ),
    severity_levels={
        "damn": 1,
        "hell": 1,
        "crap": 1,
        "piss": 2,
        "bastard": 2,
        "bitch": 2,
        "shit": 2,
        "dick": 2,
        "asshole": 3,
        "fuck": 3,
        "motherfucker": 3,
    },
    patterns=(
        r"f[\W_]*[u\*][\W_]*c[\W_]*k",
        r"sh[\*!1]t",
        r"b[\*!1]tch",
    ),
)


def load_profanity_rules(path: Path | str | None = None) -> ProfanityRules:
    """Load the rule table from a JSON file, or return the built-in table.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    if path is None:
        return DEFAULT_PROFANITY_RULES

    rules_path = Path(path).expanduser()
    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
        rules = ProfanityRules.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(
            f"Failed to load profanity rules from {rules_path}: {e}"
        ) from e

    logger.info(
        "Loaded profanity rules: %d words, %d patterns",
        len(rules.words), len(rules.patterns),
    )
    return rules
