"""ループ・集約コールバック内のデータアクセス（N+1クエリ）検出ルール。"""

from typing import Dict

from ..analyzer.call_classifier import CallClassifier
from ..models.finding import Severity
from ..models.syntax_node import SyntaxNode
from .base import Handler, Rule, RuleContext

LOOP_DATA_ACCESS = "LoopDataAccess"
AGGREGATE_DATA_ACCESS = "AggregateDataAccess"


class NoNPlusOneQueryRule(Rule):
    """ループ内や `Promise.all` 内でRepositoryメソッドを呼ぶパターンを検出する。

    ループと集約コールバックの両方の内側にある呼び出しはループとして
    1件だけ報告する。
    """

    name = "no-n-plus-one-query"
    default_severity = Severity.ERROR
    description = "ループ内でRepositoryを呼び出さず、includeを使った専用メソッドを用意する"
    messages = {
        LOOP_DATA_ACCESS: (
            "ループ内でRepositoryメソッド '{method}' を呼び出しています。"
            "N+1クエリになる可能性があるため、関連を一括取得する専用メソッドを用意してください。"
        ),
        AGGREGATE_DATA_ACCESS: (
            "Promise.all内で要素ごとにRepositoryメソッド '{method}' を呼び出しています。"
            "N+1クエリになるため、関連を一括取得する専用メソッドを用意してください。"
        ),
    }

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        classifier = context.classifier

        def check(node: SyntaxNode) -> None:
            call = CallClassifier.unwrap_await(node)
            if call is None:
                return
            result = classifier.classify(call)
            if not result.is_data_access:
                return

            scope = context.scope
            params = {"method": result.method_name or ""}
            if scope.loop_depth > 0:
                context.report(LOOP_DATA_ACCESS, call, params)
            elif scope.aggregate_active:
                context.report(AGGREGATE_DATA_ACCESS, call, params)

        return {
            "CallExpression": check,
            "AwaitExpression": check,
        }
