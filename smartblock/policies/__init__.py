"""Context-aware blocking policies for smartblock."""

from smartblock.policies.category_oracle import CategoryOracle, StaticCategoryOracle
from smartblock.policies.classifier import ClassifierConfig, ContextAwareClassifier
from smartblock.policies.history import AccessHistory
from smartblock.policies.normalize import normalize_domain

__all__ = [
    "CategoryOracle",
    "StaticCategoryOracle",
    "ClassifierConfig",
    "ContextAwareClassifier",
    "AccessHistory",
    "normalize_domain",
]
