"""走査コンテキストモデル。"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from .syntax_node import SyntaxNode


class ScopeKind(Enum):
    """スコープフレームの種類。"""
    LOOP = "loop"
    AGGREGATE_CALLBACK = "aggregate_callback"
    CONDITIONAL = "conditional"


@dataclass(frozen=True)
class ScopeSnapshot:
    """ルールが参照するスコープ状態のスナップショット。"""
    loop_depth: int = 0
    aggregate_active: bool = False
    conditional_depth: int = 0

    @property
    def in_loop(self) -> bool:
        return self.loop_depth > 0

    @property
    def in_conditional(self) -> bool:
        return self.conditional_depth > 0


@dataclass
class TraversalContext:
    """走査1回分の可変スコープ状態。

    各フレームはpushしたノードを記録する。enterでのpushは同じノードの
    exitで必ずpopされ、走査完了後は全スタックが空に戻る。
    """
    frames: Dict[ScopeKind, List[SyntaxNode]] = field(
        default_factory=lambda: {kind: [] for kind in ScopeKind}
    )
    # 種類ごとのenter/exit回数（対称性の検証用）
    enter_counts: Dict[ScopeKind, int] = field(
        default_factory=lambda: {kind: 0 for kind in ScopeKind}
    )
    exit_counts: Dict[ScopeKind, int] = field(
        default_factory=lambda: {kind: 0 for kind in ScopeKind}
    )

    @property
    def loop_depth(self) -> int:
        return len(self.frames[ScopeKind.LOOP])

    @property
    def aggregate_active(self) -> bool:
        return bool(self.frames[ScopeKind.AGGREGATE_CALLBACK])

    @property
    def conditional_depth(self) -> int:
        return len(self.frames[ScopeKind.CONDITIONAL])

    def is_empty(self) -> bool:
        """全スタックが初期状態かを確認する。"""
        return all(not stack for stack in self.frames.values())

    def snapshot(self) -> ScopeSnapshot:
        return ScopeSnapshot(
            loop_depth=self.loop_depth,
            aggregate_active=self.aggregate_active,
            conditional_depth=self.conditional_depth,
        )
