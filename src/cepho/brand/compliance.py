"""Brand compliance: deterministic formatting and checking of document text.

format_for_brand: best-effort rewrite (synonyms for banned vocabulary,
    hyphenated compounds split unless allow-listed). Idempotent, never raises.
check_brand_compliance: reports every banned-term occurrence and an
    aggregate issue when hyphenation exceeds the configured ratio.

Both functions are pure given a BrandRules instance; when none is passed
the process-wide rules are used.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from cepho.brand.rules import BrandRules, get_brand_rules, term_pattern

# A run of word characters joined by single hyphens, e.g. "state-of-the-art".
_HYPHEN_CHAIN = re.compile(r"\w+(?:-\w+)+")
# A hyphen joining two word characters. Markdown rules and table
# separators ("---", "|------|") are not hyphenation.
_JOINING_HYPHEN = re.compile(r"(?<=\w)-(?=\w)")


@dataclass(frozen=True)
class BrandComplianceReport:
    """Result of a brand compliance check."""

    issues: list[str] = field(default_factory=list)
    hyphen_count: int = 0
    word_count: int = 0

    @property
    def compliant(self) -> bool:
        """True iff no issues were found."""
        return not self.issues

    def to_dict(self) -> dict[str, Any]:
        """Deterministic dict for JSON output."""
        return {
            "compliant": self.compliant,
            "hyphen_count": self.hyphen_count,
            "issues": list(self.issues),
            "word_count": self.word_count,
        }


def _match_case(original: str, replacement: str) -> str:
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def _replace_vocabulary(text: str, rules: BrandRules) -> str:
    for term in rules.banned_vocabulary:
        synonym = rules.synonym_for(term)
        if synonym is None:
            continue
        text = term_pattern(term).sub(lambda m, s=synonym: _match_case(m.group(0), s), text)
    return text


def _split_chain(chain: str, allow_list: frozenset[str]) -> str:
    parts = chain.split("-")
    pieces = [parts[0]]
    for left, right in zip(parts, parts[1:], strict=False):
        joiner = "-" if f"{left}-{right}" in allow_list else " "
        pieces.append(joiner)
        pieces.append(right)
    return "".join(pieces)


def _replace_hyphens(text: str, rules: BrandRules) -> str:
    allow_list = rules.hyphen_allow_list
    return _HYPHEN_CHAIN.sub(lambda m: _split_chain(m.group(0), allow_list), text)


def format_for_brand(text: str, rules: BrandRules | None = None) -> str:
    """Rewrite text towards the brand style.

    Vocabulary runs first so hyphenated banned terms ("game-changing") reach
    their synonym before compounds are split. Banned terms without a synonym
    are left as they are; the compliance check still reports them.

    Args:
        text: Input text.
        rules: Brand rules. Defaults to the process-wide rules.

    Returns:
        Formatted text. Running the function again returns it unchanged.
    """
    if not text:
        return text
    if rules is None:
        rules = get_brand_rules()
    formatted = _replace_vocabulary(text, rules)
    return _replace_hyphens(formatted, rules)


def check_brand_compliance(text: str, rules: BrandRules | None = None) -> BrandComplianceReport:
    """Check text against the brand rules.

    Args:
        text: Text to check.
        rules: Brand rules. Defaults to the process-wide rules.

    Returns:
        BrandComplianceReport with one issue per banned-term occurrence (in
        text order) plus at most one excessive hyphenation issue.
    """
    if rules is None:
        rules = get_brand_rules()

    found: list[tuple[int, str]] = []
    for term in rules.banned_vocabulary:
        for match in term_pattern(term).finditer(text):
            found.append((match.start(), f'Contains dramatic vocabulary: "{match.group(0)}"'))
    issues = [issue for _, issue in sorted(found, key=lambda item: item[0])]

    hyphen_count = len(_JOINING_HYPHEN.findall(text))
    word_count = len(text.split())
    if word_count and hyphen_count / word_count > rules.max_hyphen_ratio:
        issues.append(
            f"Excessive hyphenation: {hyphen_count} hyphens across {word_count} words "
            f"(limit {rules.max_hyphen_ratio:.0%})"
        )

    return BrandComplianceReport(
        issues=issues,
        hyphen_count=hyphen_count,
        word_count=word_count,
    )
