"""Classify a template into curtain / blind / wallpaper / other."""

from typing import Any

from treatment_pricing.config import CATEGORY_BLIND, CATEGORY_CURTAIN, CATEGORY_KEYWORDS
from treatment_pricing.services.field_resolver import get_field

# Searched in this order; the first field with a keyword hit decides
_CATEGORY_FIELDS = ("treatment_category", "category", "name")


def detect_treatment_category(template: Any) -> str:
    for field_name in _CATEGORY_FIELDS:
        text = str(get_field(template, field_name, "")).lower().replace("-", "_").replace(" ", "_")
        if not text:
            continue
        for category, keywords in CATEGORY_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return category
    return CATEGORY_CURTAIN


def is_blind(template: Any) -> bool:
    return detect_treatment_category(template) == CATEGORY_BLIND
