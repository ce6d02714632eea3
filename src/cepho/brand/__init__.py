"""CEPHO Brand Compliance: vocabulary and hyphenation rules (CEPHO-BP-016)."""

from cepho.brand.compliance import (
    BrandComplianceReport,
    check_brand_compliance,
    format_for_brand,
)
from cepho.brand.rules import (
    BrandRules,
    BrandRulesError,
    clear_brand_rules_cache,
    get_brand_rules,
    load_brand_rules,
)

__all__ = [
    "BrandComplianceReport",
    "BrandRules",
    "BrandRulesError",
    "check_brand_compliance",
    "clear_brand_rules_cache",
    "format_for_brand",
    "get_brand_rules",
    "load_brand_rules",
]
