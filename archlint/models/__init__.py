"""Data models for architecture linting."""

from .syntax_node import SyntaxNode, SyntaxTree, SourceSpan
from .finding import Finding, SourceLocation, Severity
from .classification import ClassificationResult, NO_CLASSIFICATION
from .context import ScopeKind, ScopeSnapshot, TraversalContext

__all__ = [
    "SyntaxNode",
    "SyntaxTree",
    "SourceSpan",
    "Finding",
    "SourceLocation",
    "Severity",
    "ClassificationResult",
    "NO_CLASSIFICATION",
    "ScopeKind",
    "ScopeSnapshot",
    "TraversalContext",
]
