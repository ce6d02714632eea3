"""Brand rule tables, loaded from YAML once per process.

The rule file lists banned vocabulary, the synonym table used to rewrite
it, and hyphenated compounds that must be kept verbatim.

Environment Variables:
    CEPHO_BRAND_RULES_PATH: Override path to the rule file
        (default: brand_rules.yaml shipped with this package)

Fail-closed: a missing, unparseable or inconsistent rule file raises
BrandRulesError. Consistency checks keep brand formatting idempotent:
no synonym may contain a banned term or a hyphen.
"""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

CEPHO_BRAND_RULES_PATH_ENV = "CEPHO_BRAND_RULES_PATH"
DEFAULT_BRAND_RULES_PATH = Path(__file__).resolve().parent / "brand_rules.yaml"

_COMPOUND_PATTERN = re.compile(r"^\w+-\w+$")


def term_pattern(term: str) -> re.Pattern[str]:
    """Case-insensitive whole-word pattern for a vocabulary term."""
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


class BrandRulesError(Exception):
    """Raised when brand rules cannot be loaded or are inconsistent."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load brand rules '{path}': {reason}")


class BrandRules(BaseModel):
    """Immutable brand rule tables."""

    model_config = ConfigDict(frozen=True)

    guideline_id: str = Field(default="CEPHO-BP-016")
    version: str = Field(default="1.0")
    banned_vocabulary: tuple[str, ...] = Field(..., min_length=1)
    synonyms: dict[str, str] = Field(default_factory=dict)
    hyphen_allow_list: frozenset[str] = Field(default_factory=frozenset)
    max_hyphen_ratio: float = Field(default=0.05, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_consistency(self) -> BrandRules:
        banned = {term.lower() for term in self.banned_vocabulary}
        for term, synonym in self.synonyms.items():
            if term.lower() not in banned:
                raise ValueError(f"Synonym given for '{term}', which is not banned")
            contained = [b for b in self.banned_vocabulary if term_pattern(b).search(synonym)]
            if contained:
                raise ValueError(
                    f"Synonym '{synonym}' for '{term}' contains banned term '{contained[0]}'"
                )
            if "-" in synonym:
                raise ValueError(f"Synonym '{synonym}' for '{term}' must not be hyphenated")
        for compound in self.hyphen_allow_list:
            if not _COMPOUND_PATTERN.match(compound):
                raise ValueError(f"Allow-list entry '{compound}' is not a word-word compound")
        return self

    def synonym_for(self, term: str) -> str | None:
        """Return the synonym for a banned term (case-insensitive), if any."""
        return self._lowered_synonyms().get(term.lower())

    def _lowered_synonyms(self) -> dict[str, str]:
        return {term.lower(): synonym for term, synonym in self.synonyms.items()}


def load_brand_rules(path: Path | str) -> BrandRules:
    """Load and validate brand rules from a YAML file.

    Args:
        path: Path to the YAML rule file.

    Returns:
        Validated BrandRules.

    Raises:
        BrandRulesError: If the file is missing, unparseable or inconsistent.
    """
    rules_path = Path(path)
    try:
        content = rules_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BrandRulesError(str(rules_path), f"cannot read file: {exc}") from exc

    try:
        raw: Any = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise BrandRulesError(str(rules_path), f"invalid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise BrandRulesError(str(rules_path), "top level must be a mapping")

    try:
        rules = BrandRules.model_validate(raw)
    except ValidationError as exc:
        raise BrandRulesError(str(rules_path), str(exc)) from exc

    logger.debug(
        "Loaded brand rules %s v%s from %s (%d banned terms)",
        rules.guideline_id,
        rules.version,
        rules_path,
        len(rules.banned_vocabulary),
    )
    return rules


@lru_cache(maxsize=8)
def _cached_rules(path: str) -> BrandRules:
    return load_brand_rules(path)


def get_brand_rules() -> BrandRules:
    """Return the process-wide brand rules.

    Reads CEPHO_BRAND_RULES_PATH on each call; each distinct path is loaded
    once and cached.
    """
    env_path = os.environ.get(CEPHO_BRAND_RULES_PATH_ENV, "").strip()
    return _cached_rules(env_path or str(DEFAULT_BRAND_RULES_PATH))


def clear_brand_rules_cache() -> None:
    """Drop cached rule tables (tests and rule reloads)."""
    _cached_rules.cache_clear()
