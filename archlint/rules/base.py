"""ルール定義の基底クラスとルール実行コンテキスト。"""

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple
import logging

from ..analyzer.call_classifier import CallClassifier
from ..analyzer.module_resolver import ModuleResolver
from ..analyzer.scope_tracker import ScopeTracker
from ..models.context import ScopeSnapshot
from ..models.finding import Severity
from ..models.syntax_node import SyntaxNode

logger = logging.getLogger(__name__)

Handler = Callable[[SyntaxNode], None]
ReportSink = Callable[[str, SyntaxNode, Dict[str, str]], None]


@dataclass
class RuleContext:
    """1ファイル分のルール実行コンテキスト。

    走査ごとに生成し、ファイル間で共有しない。
    """
    file_path: str
    tracker: ScopeTracker
    classifier: CallClassifier
    resolver: ModuleResolver
    sink: ReportSink

    @property
    def scope(self) -> ScopeSnapshot:
        """現在のスコープ状態。"""
        return self.tracker.snapshot()

    def report(
        self,
        rule_code: str,
        node: SyntaxNode,
        params: Optional[Mapping[str, str]] = None
    ) -> None:
        """指摘を報告する。

        Args:
            rule_code: 指摘コード
            node: 違反箇所のノード
            params: メッセージ用パラメーター
        """
        self.sink(rule_code, node, dict(params or {}))


class Rule:
    """ルールの基底クラス。

    サブクラスはcreate()でセレクターからハンドラーへの表を返す。
    対象外のファイルでは空の表を返す。
    """

    name: str = ""
    # 指摘コードからメッセージテンプレートへのマッピング
    messages: Dict[str, str] = {}
    default_severity: Severity = Severity.WARN
    description: str = ""

    def __init__(self, severity: Optional[Severity] = None):
        """ルールを初期化する。

        Args:
            severity: 重大度の上書き（省略時はdefault_severity）
        """
        self.severity = severity or self.default_severity

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(self.messages)

    def applies_to(self, file_path: str) -> bool:
        """ファイルがルールの対象かを確認する。"""
        return True

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        """ハンドラー表を生成する。

        Args:
            context: ルール実行コンテキスト

        Returns:
            セレクター（":exit" 付きも可）からハンドラーへのマッピング
        """
        raise NotImplementedError

    def format_message(self, rule_code: str, params: Mapping[str, str]) -> str:
        """指摘メッセージを生成する。

        Args:
            rule_code: 指摘コード
            params: メッセージ用パラメーター

        Returns:
            メッセージ文字列
        """
        template = self.messages.get(rule_code, rule_code)
        try:
            return template.format(**params)
        except (KeyError, IndexError) as e:
            logger.warning(f"Message template for {rule_code} missing parameter: {e}")
            return template

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.severity.value})>"
