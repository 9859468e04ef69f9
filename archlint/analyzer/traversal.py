"""構文木の深さ優先走査とハンドラーディスパッチ。"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple
import itertools
import logging
import threading

from ..models.syntax_node import SyntaxNode

logger = logging.getLogger(__name__)

Handler = Callable[[SyntaxNode], None]

EXIT_SUFFIX = ":exit"
WILDCARD = "*"


@dataclass(frozen=True)
class Selector:
    """ノード型または親子連鎖パターン。

    "CallExpression > ArrowFunctionExpression" のように ">" で区切った
    連鎖を保持し、最後の要素が対象ノード自身の型になる。
    """
    chain: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "Selector":
        """セレクター文字列をパースする。

        Args:
            text: "Type" または "Parent > Child" 形式の文字列

        Returns:
            Selectorインスタンス

        Raises:
            ValueError: 空要素を含む場合
        """
        parts = tuple(p.strip() for p in text.split(">"))
        if not parts or any(not p for p in parts):
            raise ValueError(f"Invalid selector: {text!r}")
        return cls(chain=parts)

    @property
    def subject(self) -> str:
        """対象ノードの型。"""
        return self.chain[-1]

    def matches(self, node: SyntaxNode) -> bool:
        """ノードと親連鎖がパターンに一致するかを確認する。

        Args:
            node: 判定するノード

        Returns:
            一致する場合True
        """
        current: Optional[SyntaxNode] = node
        for expected in reversed(self.chain):
            if current is None:
                return False
            if expected != WILDCARD and current.type != expected:
                return False
            current = current.parent
        return True

    def __str__(self) -> str:
        return " > ".join(self.chain)


@dataclass(frozen=True)
class _Registration:
    order: int
    selector: Selector
    handler: Handler


class TraversalScheduler:
    """登録されたenter/exitハンドラーを呼び出しながら構文木を1回走査する。

    各ノードに対し前順でenter、後順でexitを1回ずつ呼び出す。
    同じノードに一致するハンドラーは登録順に呼び出される。
    走査自体は木を変更しない。
    """

    def __init__(self):
        """スケジューラーを初期化する。"""
        self._enter: Dict[str, List[_Registration]] = {}
        self._exit: Dict[str, List[_Registration]] = {}
        self._counter = itertools.count()

    def on_enter(self, selector: str, handler: Handler) -> None:
        """enterハンドラーを登録する。

        Args:
            selector: セレクター（カンマ区切りで複数指定可）
            handler: ノードを受け取る呼び出し可能オブジェクト
        """
        self._add(self._enter, selector, handler)

    def on_exit(self, selector: str, handler: Handler) -> None:
        """exitハンドラーを登録する。

        Args:
            selector: セレクター（カンマ区切りで複数指定可）
            handler: ノードを受け取る呼び出し可能オブジェクト
        """
        self._add(self._exit, selector, handler)

    def register(self, handlers: Mapping[str, Handler]) -> None:
        """セレクターをキーとするハンドラー表をまとめて登録する。

        キー末尾が ":exit" のものはexitハンドラーとして登録する。

        Args:
            handlers: セレクターからハンドラーへのマッピング
        """
        for key, handler in handlers.items():
            if key.endswith(EXIT_SUFFIX):
                self.on_exit(key[:-len(EXIT_SUFFIX)], handler)
            else:
                self.on_enter(key, handler)

    def _add(
        self,
        table: Dict[str, List[_Registration]],
        selector_text: str,
        handler: Handler
    ) -> None:
        for alternative in selector_text.split(","):
            selector = Selector.parse(alternative)
            registration = _Registration(next(self._counter), selector, handler)
            table.setdefault(selector.subject, []).append(registration)

    def handler_count(self) -> int:
        """登録済みハンドラー数を取得する。"""
        return sum(len(v) for v in self._enter.values()) + sum(
            len(v) for v in self._exit.values()
        )

    def walk(
        self,
        root: SyntaxNode,
        cancel_event: Optional[threading.Event] = None
    ) -> bool:
        """構文木を深さ優先で走査する。

        再帰を使わず明示的なスタックで走査するため、深い木でも
        再帰上限に達しない。

        Args:
            root: 根ノード
            cancel_event: セットされるとノード境界で走査を中断する

        Returns:
            最後まで走査した場合True、中断した場合False
        """
        # (ノード, exitフェーズかどうか)
        stack: List[Tuple[SyntaxNode, bool]] = [(root, False)]

        while stack:
            if cancel_event is not None and cancel_event.is_set():
                logger.debug("Traversal cancelled")
                return False

            node, exiting = stack.pop()

            if exiting:
                self._dispatch(self._exit, node)
                continue

            self._dispatch(self._enter, node)
            stack.append((node, True))
            # 子の順序を保つため逆順に積む
            for child in reversed(node.children):
                stack.append((child, False))

        return True

    def _dispatch(self, table: Dict[str, List[_Registration]], node: SyntaxNode) -> None:
        candidates = table.get(node.type, [])
        wildcards = table.get(WILDCARD, [])
        if wildcards:
            candidates = sorted(candidates + wildcards, key=lambda r: r.order)

        for registration in candidates:
            if registration.selector.matches(node):
                registration.handler(node)

    @staticmethod
    def ancestors(node: SyntaxNode) -> Iterator[SyntaxNode]:
        """ノードの祖先を親から順に列挙する。"""
        return node.iter_ancestors()
