"""構文木の走査・スコープ追跡・呼び出し分類モジュール。"""

from .call_classifier import CallClassifier
from .module_resolver import ModuleResolver
from .scope_tracker import ScopeInvariantError, ScopeTracker
from .source_parser import SourceParseError, SourceParser
from .traversal import Selector, TraversalScheduler

__all__ = [
    "CallClassifier",
    "ModuleResolver",
    "ScopeInvariantError",
    "ScopeTracker",
    "Selector",
    "SourceParseError",
    "SourceParser",
    "TraversalScheduler",
]
