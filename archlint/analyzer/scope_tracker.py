"""ループ・集約コールバックのスコープ追跡。"""

from typing import Iterable, Optional, Set
import logging

from ..models.context import ScopeKind, ScopeSnapshot, TraversalContext
from ..models.syntax_node import SyntaxNode
from .node_utils import (
    CALL_EXPRESSION,
    FUNCTION_BOUNDARIES,
    FUNCTION_LITERALS,
    LOOP_STATEMENTS,
    callee_member_name,
    dotted_callee,
    is_call_argument,
)
from .traversal import TraversalScheduler

logger = logging.getLogger(__name__)

DEFAULT_ITERATION_METHODS = (
    "forEach", "map", "filter", "reduce", "some", "every", "flatMap",
)

DEFAULT_AGGREGATE_COMBINATORS = ("Promise.all", "Promise.allSettled")


class ScopeInvariantError(Exception):
    """enter/exitの対応が崩れた場合のエラー（内部不具合）。"""
    pass


class ScopeTracker:
    """走査中のスコープ状態をpush/popで対称に管理する。

    ルールの判定条件とは独立しており、ルールはsnapshot()で現在の状態を
    参照する。データアクセスを含まない反復コールバックでも同じように
    フレームを消費する。
    """

    def __init__(
        self,
        iteration_methods: Iterable[str] = DEFAULT_ITERATION_METHODS,
        aggregate_combinators: Iterable[str] = DEFAULT_AGGREGATE_COMBINATORS
    ):
        """スコープ追跡器を初期化する。

        Args:
            iteration_methods: コールバックをループ本体とみなす反復メソッド名
            aggregate_combinators: 集約コンビネーター（"Promise.all" 形式）
        """
        self.iteration_methods: Set[str] = set(iteration_methods)
        self.aggregate_combinators: Set[str] = set(aggregate_combinators)
        self.context = TraversalContext()

    # ------------------------------------------------------------------
    # 基本操作
    # ------------------------------------------------------------------

    def enter_loop(self, node: SyntaxNode) -> None:
        self._push(ScopeKind.LOOP, node)

    def exit_loop(self, node: SyntaxNode) -> None:
        self._pop(ScopeKind.LOOP, node)

    def enter_aggregate_callback(self, node: SyntaxNode) -> None:
        self._push(ScopeKind.AGGREGATE_CALLBACK, node)

    def exit_aggregate_callback(self, node: SyntaxNode) -> None:
        self._pop(ScopeKind.AGGREGATE_CALLBACK, node)

    def enter_conditional(self, node: SyntaxNode) -> None:
        self._push(ScopeKind.CONDITIONAL, node)

    def exit_conditional(self, node: SyntaxNode) -> None:
        self._pop(ScopeKind.CONDITIONAL, node)

    def _push(self, kind: ScopeKind, node: SyntaxNode) -> None:
        self.context.frames[kind].append(node)
        self.context.enter_counts[kind] += 1

    def _pop(self, kind: ScopeKind, node: SyntaxNode) -> None:
        stack = self.context.frames[kind]
        if not stack:
            raise ScopeInvariantError(
                f"Exit of {kind.value} scope that was never entered: {node!r}"
            )
        top = stack[-1]
        if top is not node:
            raise ScopeInvariantError(
                f"Unbalanced {kind.value} scope: exiting {node!r} but top is {top!r}"
            )
        stack.pop()
        self.context.exit_counts[kind] += 1

    # ------------------------------------------------------------------
    # 状態参照
    # ------------------------------------------------------------------

    @property
    def loop_depth(self) -> int:
        return self.context.loop_depth

    @property
    def aggregate_active(self) -> bool:
        return self.context.aggregate_active

    @property
    def conditional_depth(self) -> int:
        return self.context.conditional_depth

    @property
    def is_balanced(self) -> bool:
        """全スタックが空で、種類ごとのenter/exit回数が等しいかを確認する。"""
        counts_match = all(
            self.context.enter_counts[kind] == self.context.exit_counts[kind]
            for kind in ScopeKind
        )
        return self.context.is_empty() and counts_match

    def snapshot(self) -> ScopeSnapshot:
        return self.context.snapshot()

    # ------------------------------------------------------------------
    # コールバックの判別
    # ------------------------------------------------------------------

    def callback_scope_kind(self, function_node: SyntaxNode) -> Optional[ScopeKind]:
        """関数リテラルが反復コールバックならフレームの種類を判定する。

        反復メソッド呼び出しの引数である関数リテラルについて、その呼び出しが
        関数境界を越えずに集約コンビネーターの引数になっていれば集約
        コールバック、そうでなければループ本体とみなす。木は走査中に
        変化しないため、enterとexitで同じ結果になる。

        Args:
            function_node: ArrowFunctionExpressionまたはFunctionExpression

        Returns:
            ScopeKind.AGGREGATE_CALLBACK / ScopeKind.LOOP、
            反復コールバックでない場合はNone
        """
        if function_node.type not in FUNCTION_LITERALS:
            return None

        call = function_node.parent
        if call is None or call.type != CALL_EXPRESSION:
            return None
        if not is_call_argument(call, function_node):
            return None
        if callee_member_name(call) not in self.iteration_methods:
            return None

        if self.is_aggregate_argument(call):
            return ScopeKind.AGGREGATE_CALLBACK
        return ScopeKind.LOOP

    def is_aggregate_argument(self, call: SyntaxNode) -> bool:
        """呼び出しが集約コンビネーターの引数（推移的）かを確認する。

        祖先を上方向にたどり、関数境界に達した時点で打ち切る。

        Args:
            call: 反復メソッドのCallExpression

        Returns:
            集約コンビネーターの引数の内側にある場合True
        """
        child = call
        for ancestor in call.iter_ancestors():
            if ancestor.type in FUNCTION_BOUNDARIES:
                return False
            if (
                ancestor.type == CALL_EXPRESSION
                and is_call_argument(ancestor, child)
                and dotted_callee(ancestor) in self.aggregate_combinators
            ):
                return True
            child = ancestor
        return False

    # ------------------------------------------------------------------
    # スケジューラーへの登録
    # ------------------------------------------------------------------

    def attach(self, scheduler: TraversalScheduler) -> None:
        """スケジューラーにスコープ管理用のハンドラーを登録する。

        ルールより先に登録すること。ノードのenterでpushした状態を
        そのノードの子孫に対するルールが参照できる。

        Args:
            scheduler: TraversalSchedulerインスタンス
        """
        loops = ", ".join(LOOP_STATEMENTS)
        callbacks = ", ".join(f"{CALL_EXPRESSION} > {t}" for t in FUNCTION_LITERALS)

        scheduler.on_enter(loops, self.enter_loop)
        scheduler.on_exit(loops, self.exit_loop)
        scheduler.on_enter(callbacks, self._enter_callback)
        scheduler.on_exit(callbacks, self._exit_callback)
        scheduler.on_enter("IfStatement", self.enter_conditional)
        scheduler.on_exit("IfStatement", self.exit_conditional)

    def _enter_callback(self, node: SyntaxNode) -> None:
        kind = self.callback_scope_kind(node)
        if kind is ScopeKind.AGGREGATE_CALLBACK:
            self.enter_aggregate_callback(node)
        elif kind is ScopeKind.LOOP:
            self.enter_loop(node)

    def _exit_callback(self, node: SyntaxNode) -> None:
        kind = self.callback_scope_kind(node)
        if kind is ScopeKind.AGGREGATE_CALLBACK:
            self.exit_aggregate_callback(node)
        elif kind is ScopeKind.LOOP:
            self.exit_loop(node)
