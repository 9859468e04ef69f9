"""テストコード向けのルール。"""

from typing import Dict, Optional

from ..analyzer.node_utils import CALL_EXPRESSION, MEMBER_EXPRESSION, identifier_name
from ..models.finding import Severity
from ..models.syntax_node import SyntaxNode
from .base import Handler, Rule, RuleContext

EXPECT_IN_CONDITIONAL = "ExpectInConditional"


def is_expect_call(node: Optional[SyntaxNode], assertion: str = "expect") -> bool:
    """`expect(x)` または `expect(x).not.toBe(y)` のような連鎖かを確認する。

    Args:
        node: 判定するノード
        assertion: アサーション関数名

    Returns:
        アサーション呼び出しの場合True
    """
    if node is None or node.type != CALL_EXPRESSION:
        return False

    current: Optional[SyntaxNode] = node
    while current is not None:
        if current.type == CALL_EXPRESSION:
            callee = current.child("callee")
            if identifier_name(callee) == assertion:
                return True
            current = callee
        elif current.type == MEMBER_EXPRESSION:
            current = current.child("object")
        else:
            return False
    return False


def _has_outer_chain_call(node: SyntaxNode) -> bool:
    """メソッド連鎖上でnodeより外側に呼び出しがあるかを確認する。"""
    current = node
    parent = current.parent
    while parent is not None:
        if parent.type == MEMBER_EXPRESSION and parent.child("object") is current:
            pass
        elif parent.type == CALL_EXPRESSION and parent.child("callee") is current:
            return True
        else:
            return False
        current = parent
        parent = current.parent
    return False


class NoExpectInIfRule(Rule):
    """if文の中のexpectを検出する。

    条件が満たされないとアサーションが実行されず、テストが通ってしまう。
    """

    name = "no-expect-in-if"
    default_severity = Severity.ERROR
    description = "expectは常に実行されるように書く"
    messages = {
        EXPECT_IN_CONDITIONAL: (
            "if文の中にexpectを書かないでください。"
            "条件が満たされない場合にテストがパスしてしまいます。"
        ),
    }

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check(node: SyntaxNode) -> None:
            if context.scope.conditional_depth == 0 or not is_expect_call(node):
                return
            # 連鎖の内側（expect(x).toBe(y) の expect(x)）は外側でまとめて報告する
            if _has_outer_chain_call(node):
                return
            context.report(EXPECT_IN_CONDITIONAL, node)

        return {"CallExpression": check}
