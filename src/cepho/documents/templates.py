"""Markdown templates for composed documents.

Every template renders the same frame: logo line, one "#" title, an
identity header, "##" sections, the Document Quality Assurance footer and
the brand tagline. Table cells are escaped so caller text cannot break the
table layout.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from cepho.documents.content import (
    ExecutiveSummaryContent,
    InnovationBriefContent,
    ReportContent,
)
from cepho.models.documents import (
    REVIEWER_IDENTITY,
    SYSTEM_IDENTITY,
    Classification,
    DocumentStatus,
    DocumentType,
    ScoringMatrixEntry,
)
from cepho.scoring.engine import (
    mean_score,
    rate_score,
    total_weighted_score,
    weighted_overall_score,
)

LOGO_LINE = "![CEPHO.AI Logo](logo)"
TAGLINE = "*CEPHO.AI | Where Intelligence Begins*"
RULE = "---"
EMPTY_LIST_TEXT = "None recorded."
FINDINGS_PREVIEW_CHARS = 100
QA_STATEMENT = (
    "*This document has been reviewed for accuracy, completeness, and compliance "
    "with CEPHO.AI brand and quality standards.*"
)

SECTION_EXECUTIVE_SUMMARY = "Executive Summary"
SECTION_KEY_FINDINGS = "Key Findings"
SECTION_ASSESSMENT = "Assessment Summary"
SECTION_RECOMMENDATIONS = "Recommendations"
SECTION_NEXT_STEPS = "Next Steps"
SECTION_QA = "Document Quality Assurance"
SECTION_SUMMARY = "Summary"

# Section headings a complete document of each type must contain.
_REPORT_SECTIONS = (SECTION_SUMMARY, SECTION_RECOMMENDATIONS, SECTION_NEXT_STEPS, SECTION_QA)
REQUIRED_SECTIONS: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.EXECUTIVE_SUMMARY: (
        SECTION_EXECUTIVE_SUMMARY,
        SECTION_KEY_FINDINGS,
        SECTION_RECOMMENDATIONS,
        SECTION_NEXT_STEPS,
        SECTION_QA,
    ),
    DocumentType.INNOVATION_BRIEF: (
        "1. Executive Summary",
        "2. Opportunity Overview",
        "3. Strategic Assessment Summary",
        "4. Investment Scenarios",
        "5. Final Recommendation",
        SECTION_QA,
        "Appendix A: Detailed Scoring Matrix",
    ),
}
for _doc_type in DocumentType:
    REQUIRED_SECTIONS.setdefault(_doc_type, _REPORT_SECTIONS)


@dataclass(frozen=True)
class DocumentIdentity:
    """Identity fields interpolated into every template."""

    document_id: str
    document_type: DocumentType
    date: str
    classification: Classification
    target_status: DocumentStatus


def _cell(text: str) -> str:
    return " ".join(text.split()).replace("|", "\\|")


def _number(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.1f}"


def _rounded_score(value: float) -> int:
    # Overall rows rate the same whole number they display.
    return round(value)


def _numbered(items: Sequence[str]) -> str:
    if not items:
        return EMPTY_LIST_TEXT
    return "\n\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _title_words(value: str) -> str:
    return " ".join(word.capitalize() for word in value.replace("_", " ").split())


def _header(title: str, identity: DocumentIdentity, extra: Sequence[str] = ()) -> list[str]:
    lines = [
        LOGO_LINE,
        "",
        f"# {title}",
        "",
        f"**Document ID:** {identity.document_id}  ",
        f"**Date:** {identity.date}  ",
        f"**Classification:** {identity.classification.label}",
    ]
    if extra:
        lines[-1] += "  "
        lines.extend(f"{line}  " for line in extra[:-1])
        lines.append(extra[-1])
    lines.extend(["", RULE, ""])
    return lines


def _footer(identity: DocumentIdentity) -> list[str]:
    return [
        RULE,
        "",
        f"## {SECTION_QA}",
        "",
        f"**Prepared by:** {SYSTEM_IDENTITY}  ",
        f"**Reviewed by:** {REVIEWER_IDENTITY}  ",
        f"**Date:** {identity.date}  ",
        f"**Status:** {identity.target_status.label}  ",
        f"**Classification:** {identity.classification.label}",
        "",
        QA_STATEMENT,
        "",
    ]


def _closing() -> list[str]:
    return [RULE, "", TAGLINE, ""]


def _section(heading: str, body: str, level: int = 2) -> list[str]:
    return [f"{'#' * level} {heading}", "", body, ""]


def render_scoring_table(entries: Sequence[ScoringMatrixEntry]) -> list[str]:
    """Render an Assessment Summary table with a synthesized Overall row.

    Raises:
        EmptyScoringMatrixError: If entries is empty.
        DegenerateWeightsError: If the weights sum to zero.
    """
    overall = _rounded_score(weighted_overall_score(entries))
    rating = rate_score(overall)
    total_weight = sum(entry.weight for entry in entries)
    lines = [
        f"## {SECTION_ASSESSMENT}",
        "",
        "| Dimension | Score | Weight | Weighted | Assessment |",
        "|-----------|-------|--------|----------|------------|",
    ]
    for entry in entries:
        lines.append(
            f"| {_cell(entry.dimension)} | {_number(entry.score)}/100 | "
            f"{_number(entry.weight)}% | {entry.weighted_score:.1f} | {_cell(entry.assessment)} |"
        )
    lines.append(
        f"| **Overall** | **{overall}/100** | **{_number(total_weight)}%** | "
        f"**{total_weighted_score(entries):.1f}** | **{rating.rating}** |"
    )
    lines.append("")
    return lines


def render_executive_summary(
    content: ExecutiveSummaryContent,
    identity: DocumentIdentity,
    scoring_matrix: Sequence[ScoringMatrixEntry] | None,
) -> str:
    """Render the Executive Summary template."""
    lines = _header(content.title, identity)
    lines += _section(SECTION_EXECUTIVE_SUMMARY, content.overview)
    lines += _section(SECTION_KEY_FINDINGS, _numbered(content.key_findings))
    if scoring_matrix:
        lines += render_scoring_table(scoring_matrix)
    lines += [RULE, ""]
    lines += _section(SECTION_RECOMMENDATIONS, _numbered(content.recommendations))
    lines += _section(SECTION_NEXT_STEPS, _numbered(content.next_steps))
    lines += _footer(identity)
    lines += _closing()
    return "\n".join(lines)


def _expert_panel(content: InnovationBriefContent) -> list[str]:
    experts = [e for a in content.assessments for e in a.expert_viewpoints]
    if not experts:
        return []
    lines = ["## Expert Panel Recommendations", ""]
    for i, expert in enumerate(experts):
        if i:
            lines += [RULE, ""]
        lines += [
            f"### {expert.expert_name} ({expert.role})",
            "",
            expert.viewpoint,
            "",
            f"**Score:** {_number(expert.score)}/100 | "
            f"**Recommendation:** {_title_words(expert.recommendation)}",
            "",
        ]
    return lines


def render_innovation_brief(
    content: InnovationBriefContent,
    identity: DocumentIdentity,
    scoring_matrix: Sequence[ScoringMatrixEntry] | None,
) -> str:
    """Render the Innovation Brief template.

    The overall score is the equal-weight mean of the assessment scores.

    Raises:
        EmptyScoringMatrixError: If the brief has no assessments.
    """
    overall = _rounded_score(mean_score([a.score for a in content.assessments]))
    rating = rate_score(overall)
    decision = content.final_recommendation.decision

    lines = _header(content.title, identity, extra=[f"**Source:** {content.idea.source}"])

    lines += _section(
        f"1. {SECTION_EXECUTIVE_SUMMARY}",
        "\n\n".join(
            [
                content.idea.description,
                f"**Overall Assessment Score:** {overall}/100 ({rating.rating})",
                f"**Recommendation:** {decision.value.capitalize()}",
            ]
        ),
    )
    lines += [RULE, ""]

    lines += _section("2. Opportunity Overview", content.idea.description)
    lines += _section(
        "Source Analysis",
        f"This opportunity was identified through {content.idea.source}. The initial "
        "screening indicated sufficient potential to warrant full strategic assessment.",
        level=3,
    )
    lines += [RULE, ""]

    lines += [
        "## 3. Strategic Assessment Summary",
        "",
        "| Assessment Type | Score | Rating | Key Finding |",
        "|-----------------|-------|--------|-------------|",
    ]
    for assessment in content.assessments:
        finding = _cell(assessment.findings)
        if len(finding) > FINDINGS_PREVIEW_CHARS:
            finding = finding[:FINDINGS_PREVIEW_CHARS].rstrip() + "..."
        lines.append(
            f"| {_cell(_title_words(assessment.type))} | {_number(assessment.score)}/100 | "
            f"{rate_score(assessment.score).rating} | {finding} |"
        )
    lines += [
        f"| **Overall** | **{overall}/100** | **{rating.rating}** | **{rating.meaning}** |",
        "",
    ]
    lines += _expert_panel(content)
    if scoring_matrix:
        lines += render_scoring_table(scoring_matrix)
    lines += [RULE, ""]

    lines += [
        "## 4. Investment Scenarios",
        "",
        "| Scenario | Investment | Projected Return | Risk Level | Timeline |",
        "|----------|------------|------------------|------------|----------|",
    ]
    for scenario in content.investment_scenarios:
        lines.append(
            f"| {_cell(scenario.name)} | £{scenario.amount:,.0f} | "
            f"{_cell(scenario.projected_return)} | {_cell(scenario.risk_level)} | "
            f"{_cell(scenario.timeline)} |"
        )
    lines += ["", RULE, ""]

    lines += [
        "## 5. Final Recommendation",
        "",
        f"### Decision: {decision.value.upper()}",
        "",
        content.final_recommendation.rationale,
        "",
    ]
    lines += _section(SECTION_NEXT_STEPS, _numbered(content.final_recommendation.next_steps), 3)

    lines += _footer(identity)
    lines += [RULE, "", "## Appendix A: Detailed Scoring Matrix", ""]
    for i, assessment in enumerate(content.assessments):
        if i:
            lines += [RULE, ""]
        lines += [
            f"### {_title_words(assessment.type)}",
            "",
            f"**Score:** {_number(assessment.score)}/100",
            "",
            assessment.findings,
            "",
        ]
    lines += _closing()
    return "\n".join(lines)


def render_report(
    content: ReportContent,
    identity: DocumentIdentity,
    scoring_matrix: Sequence[ScoringMatrixEntry] | None,
) -> str:
    """Render the generic report template used by the remaining types."""
    lines = _header(
        content.title,
        identity,
        extra=[f"**Document Type:** {identity.document_type.label}"],
    )
    lines += _section(SECTION_SUMMARY, content.summary)
    for section in content.sections:
        body_parts = [section.body] if section.body else []
        if section.bullets:
            body_parts.append("\n".join(f"- {bullet}" for bullet in section.bullets))
        lines += _section(section.heading, "\n\n".join(body_parts) or EMPTY_LIST_TEXT)
    if scoring_matrix:
        lines += render_scoring_table(scoring_matrix)
    lines += [RULE, ""]
    lines += _section(SECTION_RECOMMENDATIONS, _numbered(content.recommendations))
    lines += _section(SECTION_NEXT_STEPS, _numbered(content.next_steps))
    lines += _footer(identity)
    lines += _closing()
    return "\n".join(lines)
