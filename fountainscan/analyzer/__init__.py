"""Analyzer modules for FountainScan.

The engine lives in `fountainscan.analyzer.engine`; it is not re-exported
here so that the cache and config modules can import the models without
pulling in the engine.
"""

from .catalog import CatalogStore, PatternCatalog, PatternCategory, default_catalog, load_catalog
from .models import ContentSnapshot, FormInput, FormSnapshot, ImageRef, Issue, ScriptRef, Target, Verdict

__all__ = [
    "CatalogStore",
    "PatternCatalog",
    "PatternCategory",
    "default_catalog",
    "load_catalog",
    "ContentSnapshot",
    "FormInput",
    "FormSnapshot",
    "ImageRef",
    "Issue",
    "ScriptRef",
    "Target",
    "Verdict",
]
