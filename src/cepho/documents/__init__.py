"""CEPHO Document Composer

Turns structured content into branded markdown documents.

Modules:
- content: typed content payloads per template
- templates: markdown rendering per document type
- ids: unique, time-ordered document IDs
- composer: compose_document entry point
"""

from cepho.documents.composer import (
    TEMPLATES,
    ComposedDocument,
    DocumentCompositionError,
    compose_document,
    content_type_for,
)
from cepho.documents.content import (
    Decision,
    DocumentContent,
    ExecutiveSummaryContent,
    ExpertViewpoint,
    FinalRecommendation,
    Idea,
    InnovationBriefContent,
    InvestmentScenario,
    ReportContent,
    ReportSection,
    StrategicAssessment,
)
from cepho.documents.ids import DocumentIdGenerator, generate_document_id
from cepho.documents.templates import REQUIRED_SECTIONS

__all__ = [
    "REQUIRED_SECTIONS",
    "TEMPLATES",
    "ComposedDocument",
    "Decision",
    "DocumentCompositionError",
    "DocumentContent",
    "DocumentIdGenerator",
    "ExecutiveSummaryContent",
    "ExpertViewpoint",
    "FinalRecommendation",
    "Idea",
    "InnovationBriefContent",
    "InvestmentScenario",
    "ReportContent",
    "ReportSection",
    "StrategicAssessment",
    "compose_document",
    "content_type_for",
    "generate_document_id",
]
