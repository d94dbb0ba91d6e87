"""Form-field signal extractor."""

from __future__ import annotations

from typing import Optional

from .catalog import PatternCatalog
from .models import ContentSnapshot, FormInput, FormSnapshot, Issue
from .rules import ExtractionContext, category_issue

SENSITIVE_CATEGORY = "sensitive_form_fields"
FINANCIAL_CATEGORY = "financial_instrument_fields"

# A form asking for more than this many sensitive inputs gets a submit guard.
SENSITIVE_FORM_THRESHOLD = 2


def sensitive_terms(field: FormInput, catalog: PatternCatalog) -> list[str]:
    category = catalog.get(SENSITIVE_CATEGORY)
    if category is None:
        return []
    return category.match(field.haystack)


def count_sensitive_inputs(form: FormSnapshot, catalog: PatternCatalog) -> int:
    return sum(1 for field in form.inputs if sensitive_terms(field, catalog))


def has_sensitive_form(snapshot: Optional[ContentSnapshot], catalog: PatternCatalog) -> bool:
    """True when any form asks for more sensitive inputs than the threshold."""
    if snapshot is None:
        return False
    return any(
        count_sensitive_inputs(form, catalog) > SENSITIVE_FORM_THRESHOLD
        for form in snapshot.forms
    )


class FormFieldExtractor:
    """Flags inputs asking for identity or financial details."""

    name = "form_fields"
    requires_snapshot = True

    def extract(self, context: ExtractionContext) -> list[Issue]:
        snapshot = context.snapshot
        if snapshot is None or not snapshot.forms:
            return []

        catalog = context.catalog
        sensitive = catalog.get(SENSITIVE_CATEGORY)
        financial = catalog.get(FINANCIAL_CATEGORY)
        if sensitive is None and financial is None:
            return []

        issues: list[Issue] = []
        seen_terms: set[str] = set()

        for form in snapshot.forms:
            for field in form.inputs:
                haystack = field.haystack
                if not haystack:
                    continue

                if sensitive is not None:
                    for term in sensitive.match(haystack):
                        if term in seen_terms:
                            continue
                        seen_terms.add(term)
                        issues.append(category_issue(sensitive, term))

                if financial is not None and financial.match(haystack):
                    issues.append(category_issue(financial, field.identifier))

        return issues
