"""構文木ノードモデル。"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union


@dataclass(frozen=True)
class SourceSpan:
    """ノードのソース範囲（行は1始まり、列は0始まり）。"""
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_column}"


@dataclass(eq=False)
class SyntaxNode:
    """ESTree語彙の型タグを持つ構文木ノード。

    子ノードは順序付きリストで保持し、名前付きフィールド（callee, arguments
    など）からも同じノードを参照できる。parentは祖先探索専用の非所有参照で、
    ノードの寿命は所属するSyntaxTreeが管理する。
    """
    type: str
    span: Optional[SourceSpan] = None
    fields: Dict[str, Union["SyntaxNode", List["SyntaxNode"]]] = field(default_factory=dict)
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: List["SyntaxNode"] = field(default_factory=list)
    parent: Optional["SyntaxNode"] = field(default=None, repr=False)

    def child(self, name: str) -> Optional["SyntaxNode"]:
        """名前付きフィールドの単一ノードを取得する。

        Args:
            name: フィールド名

        Returns:
            ノード、存在しないかリストの場合はNone
        """
        value = self.fields.get(name)
        if isinstance(value, SyntaxNode):
            return value
        return None

    def child_list(self, name: str) -> List["SyntaxNode"]:
        """名前付きフィールドのノードリストを取得する。

        Args:
            name: フィールド名

        Returns:
            ノードのリスト（存在しない場合は空）
        """
        value = self.fields.get(name)
        if isinstance(value, list):
            return value
        if isinstance(value, SyntaxNode):
            return [value]
        return []

    def attr(self, name: str, default: Any = None) -> Any:
        """スカラー属性を取得する。"""
        return self.attrs.get(name, default)

    @property
    def name(self) -> Optional[str]:
        """識別子名（Identifier以外はNone）。"""
        value = self.attrs.get("name")
        return value if isinstance(value, str) else None

    def iter_ancestors(self) -> Iterator["SyntaxNode"]:
        """親から根に向かって祖先ノードを列挙する。"""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def iter_descendants(self) -> Iterator["SyntaxNode"]:
        """自身を含む子孫ノードを前順で列挙する。"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def add_child(self, field_name: Optional[str], node: "SyntaxNode") -> "SyntaxNode":
        """子ノードを追加して親参照を設定する。

        ツリー構築時（フロントエンド）専用。走査中には呼ばない。

        Args:
            field_name: 名前付きフィールド（Noneの場合は位置のみ）
            node: 追加するノード

        Returns:
            追加したノード
        """
        node.parent = self
        self.children.append(node)
        if field_name:
            existing = self.fields.get(field_name)
            if isinstance(existing, list):
                existing.append(node)
            else:
                self.fields[field_name] = node
        return node

    def add_children(self, field_name: str, nodes: List["SyntaxNode"]) -> None:
        """リスト型フィールドとして子ノード群を追加する。"""
        self.fields[field_name] = []
        for node in nodes:
            self.add_child(field_name, node)

    def __repr__(self) -> str:
        label = self.name or self.attrs.get("value")
        suffix = f" {label!r}" if label is not None else ""
        location = f" @{self.span}" if self.span else ""
        return f"<{self.type}{suffix}{location}>"


@dataclass
class SyntaxTree:
    """1ファイル分の構文木。

    走査1回分のノードをまとめて所有する。
    """
    root: SyntaxNode
    file_path: str

    def iter_nodes(self) -> Iterator[SyntaxNode]:
        """全ノードを前順で列挙する。"""
        return self.root.iter_descendants()

    def find_all(self, node_type: str) -> List[SyntaxNode]:
        """指定した型のノードを出現順で取得する。

        Args:
            node_type: 型タグ

        Returns:
            一致したノードのリスト
        """
        return [n for n in self.iter_nodes() if n.type == node_type]

    def find_first(self, node_type: str) -> Optional[SyntaxNode]:
        for node in self.iter_nodes():
            if node.type == node_type:
                return node
        return None

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())
