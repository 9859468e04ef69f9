"""呼び出しノードのデータアクセス分類。"""

from typing import Iterable, List, Optional, Pattern
import re
import logging

from ..models.classification import ClassificationResult, NO_CLASSIFICATION
from ..models.syntax_node import SyntaxNode
from .node_utils import (
    AWAIT_EXPRESSION,
    CALL_EXPRESSION,
    MEMBER_EXPRESSION,
    callee_member_name,
    identifier_name,
    member_property_name,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_ACCESS_TOKENS = ("repo", "repository")

DEFAULT_ACCESSOR_TOKENS = ("repository",)

# "get" は完全一致、それ以外は前方一致
DEFAULT_DATA_ACCESS_VERBS = (
    r"^get$",
    r"^find",
    r"^search",
    r"^list",
    r"^fetch",
    r"^load",
    r"^query",
)


class CallClassifier:
    """呼び出しがRepository経由のデータアクセスかを判定する。

    履歴を持たない純粋関数として振る舞い、同じノードには常に同じ結果を
    返す。判定は2段階で、先に一致した段階の結果を採用する。

    1. レシーバー名: `orderRepository.findAll()` のようにレシーバーの
       識別子名にデータアクセスハンドルのトークンが含まれる
    2. 動詞パターン: `Container.getUserRepository().findAll()` のように
       メソッド名がデータアクセス動詞で、レシーバーがRepositoryを返す
       アクセサー呼び出しになっている
    """

    def __init__(
        self,
        data_access_tokens: Iterable[str] = DEFAULT_DATA_ACCESS_TOKENS,
        accessor_tokens: Iterable[str] = DEFAULT_ACCESSOR_TOKENS,
        data_access_verbs: Iterable[str] = DEFAULT_DATA_ACCESS_VERBS
    ):
        """分類器を初期化する。

        Args:
            data_access_tokens: レシーバー名に含まれるトークン（小文字比較）
            accessor_tokens: アクセサーメソッド名に含まれるトークン（小文字比較）
            data_access_verbs: メソッド名の正規表現（大文字小文字を区別しない）
        """
        self.data_access_tokens = tuple(t.lower() for t in data_access_tokens)
        self.accessor_tokens = tuple(t.lower() for t in accessor_tokens)
        self.verb_patterns: List[Pattern[str]] = [
            re.compile(p, re.IGNORECASE) for p in data_access_verbs
        ]

    def classify(self, node: Optional[SyntaxNode]) -> ClassificationResult:
        """呼び出しノードを分類する。

        awaitは1段だけ展開するため、`await repo.find(x)` と
        `repo.find(x)` は同じ結果になる。

        Args:
            node: CallExpressionまたはAwaitExpressionノード

        Returns:
            ClassificationResult（該当しない場合はNO_CLASSIFICATION）
        """
        call = self.unwrap_await(node)
        if call is None or call.type != CALL_EXPRESSION:
            return NO_CLASSIFICATION

        callee = call.child("callee")
        if callee is None or callee.type != MEMBER_EXPRESSION:
            return NO_CLASSIFICATION

        method_name = member_property_name(callee)
        if not method_name:
            return NO_CLASSIFICATION

        receiver = callee.child("object")

        # 1. レシーバー名
        if self._contains_token(identifier_name(receiver), self.data_access_tokens):
            return ClassificationResult.data_access(method_name)

        # 2. 動詞パターン + アクセサー呼び出しのレシーバー
        if self._is_data_access_verb(method_name) and self._is_accessor_call(receiver):
            return ClassificationResult.data_access(method_name)

        return NO_CLASSIFICATION

    @staticmethod
    def unwrap_await(node: Optional[SyntaxNode]) -> Optional[SyntaxNode]:
        """awaitの対象が呼び出しであればその呼び出しを返す。"""
        if node is not None and node.type == AWAIT_EXPRESSION:
            argument = node.child("argument")
            # ESTreeのオプショナルチェーン（await repo?.find(x)）
            if argument is not None and argument.type == "ChainExpression":
                argument = argument.child("expression")
            if argument is not None and argument.type == CALL_EXPRESSION:
                return argument
            return None
        return node

    def _is_data_access_verb(self, method_name: str) -> bool:
        return any(p.search(method_name) for p in self.verb_patterns)

    def _is_accessor_call(self, receiver: Optional[SyntaxNode]) -> bool:
        if receiver is None or receiver.type != CALL_EXPRESSION:
            return False
        return self._contains_token(callee_member_name(receiver), self.accessor_tokens)

    @staticmethod
    def _contains_token(name: str, tokens: Iterable[str]) -> bool:
        if not name:
            return False
        lowered = name.lower()
        return any(token in lowered for token in tokens)
