"""tree-sitterを使用したJavaScript/TypeScriptソースコード解析のラッパー。"""

from typing import Callable, Dict, List, Optional
from pathlib import Path
import logging
import threading

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..models.syntax_node import SourceSpan, SyntaxNode, SyntaxTree

logger = logging.getLogger(__name__)


class SourceParseError(Exception):
    """ソースコードのパース時のエラー。"""
    pass


# 拡張子から文法名へのマッピング
EXTENSION_LANGUAGES: Dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

_LANGUAGE_FACTORIES: Dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

# 名前だけ変える単純な対応（子ノードはそのまま変換する）
_RENAMED_TYPES: Dict[str, str] = {
    "program": "Program",
    "expression_statement": "ExpressionStatement",
    "statement_block": "BlockStatement",
    "return_statement": "ReturnStatement",
    "lexical_declaration": "VariableDeclaration",
    "variable_declaration": "VariableDeclaration",
    "array": "ArrayExpression",
    "object": "ObjectExpression",
    "spread_element": "SpreadElement",
    "class_declaration": "ClassDeclaration",
    "class_body": "ClassBody",
    "binary_expression": "BinaryExpression",
    "assignment_expression": "AssignmentExpression",
    "template_string": "TemplateLiteral",
    "object_pattern": "ObjectPattern",
    "array_pattern": "ArrayPattern",
    "rest_pattern": "RestElement",
    "while_statement": "WhileStatement",
    "do_statement": "DoWhileStatement",
    "for_statement": "ForStatement",
    "try_statement": "TryStatement",
    "catch_clause": "CatchClause",
}

_IDENTIFIER_TYPES = frozenset({
    "identifier",
    "property_identifier",
    "private_property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "type_identifier",
})

_LITERAL_TYPES = frozenset({"number", "true", "false", "null", "undefined", "regex"})


class _Normalizer:
    """tree-sitterの具象構文木をESTree形状のSyntaxNodeに変換する。

    ルールが参照する型だけをESTreeの語彙とフィールドに変換し、それ以外は
    tree-sitterの型名のまま子ノードを保持する。括弧式は中身に展開する。
    """

    def __init__(self, source: bytes):
        self.source = source
        # (tree-sitterノード, 埋める先の仮ノード)
        self._pending: List[tuple] = []
        self._handlers: Dict[str, Callable[[Node], SyntaxNode]] = {
            "call_expression": self._call,
            "new_expression": self._new,
            "member_expression": self._member,
            "subscript_expression": self._subscript,
            "await_expression": self._await,
            "arrow_function": self._arrow,
            "function_expression": self._function_expression,
            "function": self._function_expression,
            "generator_function": self._function_expression,
            "function_declaration": self._function_declaration,
            "generator_function_declaration": self._function_declaration,
            "method_definition": self._method,
            "for_in_statement": self._for_in,
            "if_statement": self._if,
            "import_statement": self._import,
            "export_statement": self._export,
            "string": self._string,
            "variable_declarator": self._declarator,
            "pair": self._pair,
            "assignment_pattern": self._assignment_pattern,
            "required_parameter": self._parameter,
            "optional_parameter": self._parameter,
            "type_alias_declaration": self._type_declaration,
            "interface_declaration": self._type_declaration,
            "this": self._this,
        }

    # ------------------------------------------------------------------
    # 共通処理
    # ------------------------------------------------------------------

    def convert(self, root: Node) -> SyntaxNode:
        """ルートから全体を変換する。

        子ノードは仮ノードとして作業スタックに積み、取り出したときに中身を
        埋める。深い入れ子（長いメソッド連鎖など）でも再帰上限に達しない。

        Args:
            root: tree-sitterのルートノード

        Returns:
            変換したSyntaxNode
        """
        self._pending = []
        result = self._defer(root)
        while self._pending:
            ts_node, target = self._pending.pop()
            built = self._build(ts_node)
            target.type = built.type
            target.span = built.span
            target.attrs = built.attrs
            target.fields = built.fields
            target.children = built.children
            for child in target.children:
                child.parent = target
        return result

    def _defer(self, ts_node: Node) -> SyntaxNode:
        placeholder = SyntaxNode(type=ts_node.type)
        self._pending.append((ts_node, placeholder))
        return placeholder

    def _build(self, ts_node: Node) -> SyntaxNode:
        # 括弧式は中身に置き換える
        while ts_node.type == "parenthesized_expression":
            inner = self._named(ts_node)
            if len(inner) != 1:
                break
            ts_node = inner[0]

        if ts_node.type in _IDENTIFIER_TYPES:
            return self._make("Identifier", ts_node, name=self._text(ts_node))
        if ts_node.type in _LITERAL_TYPES:
            return self._make("Literal", ts_node, raw=self._text(ts_node))

        handler = self._handlers.get(ts_node.type)
        if handler is not None:
            return handler(ts_node)

        node = self._make(_RENAMED_TYPES.get(ts_node.type, ts_node.type), ts_node)
        for child in self._named(ts_node):
            node.add_child(None, self._defer(child))
        return node

    def _make(self, node_type: str, ts_node: Node, **attrs) -> SyntaxNode:
        start = ts_node.start_point
        end = ts_node.end_point
        span = SourceSpan(
            start_line=start[0] + 1,
            start_column=start[1],
            end_line=end[0] + 1,
            end_column=end[1],
        )
        return SyntaxNode(type=node_type, span=span, attrs=dict(attrs))

    def _text(self, ts_node: Node) -> str:
        return self.source[ts_node.start_byte:ts_node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def _named(ts_node: Optional[Node]) -> List[Node]:
        if ts_node is None:
            return []
        return [c for c in ts_node.named_children if c.type != "comment"]

    def _add_field(self, node: SyntaxNode, name: str, ts_child: Optional[Node]) -> None:
        if ts_child is not None:
            node.add_child(name, self._defer(ts_child))

    def _add_params(self, node: SyntaxNode, ts_node: Node) -> None:
        single = ts_node.child_by_field_name("parameter")
        if single is not None:
            params = [single]
        else:
            params = self._named(ts_node.child_by_field_name("parameters"))
        node.add_children("params", [self._defer(p) for p in params])

    # ------------------------------------------------------------------
    # 型ごとの変換
    # ------------------------------------------------------------------

    def _call(self, ts_node: Node) -> SyntaxNode:
        node = self._make("CallExpression", ts_node)
        self._add_field(node, "callee", ts_node.child_by_field_name("function"))
        arguments = ts_node.child_by_field_name("arguments")
        if arguments is not None and arguments.type == "arguments":
            node.add_children("arguments", [self._defer(a) for a in self._named(arguments)])
        else:
            # タグ付きテンプレート
            node.fields["arguments"] = []
            self._add_field(node, "quasi", arguments)
        return node

    def _new(self, ts_node: Node) -> SyntaxNode:
        node = self._make("NewExpression", ts_node)
        self._add_field(node, "callee", ts_node.child_by_field_name("constructor"))
        arguments = ts_node.child_by_field_name("arguments")
        node.add_children("arguments", [self._defer(a) for a in self._named(arguments)])
        return node

    def _member(self, ts_node: Node) -> SyntaxNode:
        node = self._make("MemberExpression", ts_node, computed=False)
        self._add_field(node, "object", ts_node.child_by_field_name("object"))
        self._add_field(node, "property", ts_node.child_by_field_name("property"))
        return node

    def _subscript(self, ts_node: Node) -> SyntaxNode:
        node = self._make("MemberExpression", ts_node, computed=True)
        self._add_field(node, "object", ts_node.child_by_field_name("object"))
        self._add_field(node, "property", ts_node.child_by_field_name("index"))
        return node

    def _await(self, ts_node: Node) -> SyntaxNode:
        node = self._make("AwaitExpression", ts_node)
        inner = self._named(ts_node)
        if inner:
            self._add_field(node, "argument", inner[0])
        return node

    def _arrow(self, ts_node: Node) -> SyntaxNode:
        node = self._make("ArrowFunctionExpression", ts_node)
        self._add_params(node, ts_node)
        self._add_field(node, "body", ts_node.child_by_field_name("body"))
        return node

    def _function_expression(self, ts_node: Node) -> SyntaxNode:
        node = self._make("FunctionExpression", ts_node)
        self._add_field(node, "id", ts_node.child_by_field_name("name"))
        self._add_params(node, ts_node)
        self._add_field(node, "body", ts_node.child_by_field_name("body"))
        return node

    def _function_declaration(self, ts_node: Node) -> SyntaxNode:
        node = self._make("FunctionDeclaration", ts_node)
        self._add_field(node, "id", ts_node.child_by_field_name("name"))
        self._add_params(node, ts_node)
        self._add_field(node, "body", ts_node.child_by_field_name("body"))
        return node

    def _method(self, ts_node: Node) -> SyntaxNode:
        node = self._make("MethodDefinition", ts_node, computed=False)
        name = ts_node.child_by_field_name("name")
        if name is not None and name.type == "computed_property_name":
            node.attrs["computed"] = True
        self._add_field(node, "key", name)

        # ESTreeと同じくメソッド本体はFunctionExpressionとして保持する
        value = self._make("FunctionExpression", ts_node)
        self._add_params(value, ts_node)
        self._add_field(value, "body", ts_node.child_by_field_name("body"))
        node.add_child("value", value)
        return node

    def _for_in(self, ts_node: Node) -> SyntaxNode:
        operator = ts_node.child_by_field_name("operator")
        if operator is not None:
            is_of = operator.type == "of"
        else:
            is_of = any(c.type == "of" for c in ts_node.children)

        node = self._make("ForOfStatement" if is_of else "ForInStatement", ts_node)
        self._add_field(node, "left", ts_node.child_by_field_name("left"))
        self._add_field(node, "right", ts_node.child_by_field_name("right"))
        self._add_field(node, "body", ts_node.child_by_field_name("body"))
        return node

    def _if(self, ts_node: Node) -> SyntaxNode:
        node = self._make("IfStatement", ts_node)
        self._add_field(node, "test", ts_node.child_by_field_name("condition"))
        self._add_field(node, "consequent", ts_node.child_by_field_name("consequence"))
        alternative = ts_node.child_by_field_name("alternative")
        if alternative is not None:
            # else_clause の中身を取り出す
            inner = self._named(alternative)
            self._add_field(node, "alternate", inner[0] if inner else alternative)
        return node

    def _import(self, ts_node: Node) -> SyntaxNode:
        node = self._make("ImportDeclaration", ts_node)
        source = ts_node.child_by_field_name("source")
        for child in self._named(ts_node):
            if source is not None and child == source:
                continue
            node.add_child(None, self._defer(child))
        self._add_field(node, "source", source)
        return node

    def _export(self, ts_node: Node) -> SyntaxNode:
        source = ts_node.child_by_field_name("source")
        child_types = {c.type for c in ts_node.children}
        if source is not None and "*" in child_types and "export_clause" not in child_types \
                and "namespace_export" not in child_types:
            node_type = "ExportAllDeclaration"
        elif "default" in child_types:
            node_type = "ExportDefaultDeclaration"
        else:
            node_type = "ExportNamedDeclaration"

        node = self._make(node_type, ts_node)
        for child in self._named(ts_node):
            if source is not None and child == source:
                continue
            field_name = "declaration" if child.type.endswith("declaration") else None
            node.add_child(field_name, self._defer(child))
        self._add_field(node, "source", source)
        return node

    def _string(self, ts_node: Node) -> SyntaxNode:
        raw = self._text(ts_node)
        value = raw[1:-1] if len(raw) >= 2 else raw
        return self._make("Literal", ts_node, value=value, raw=raw)

    def _declarator(self, ts_node: Node) -> SyntaxNode:
        node = self._make("VariableDeclarator", ts_node)
        self._add_field(node, "id", ts_node.child_by_field_name("name"))
        self._add_field(node, "init", ts_node.child_by_field_name("value"))
        return node

    def _pair(self, ts_node: Node) -> SyntaxNode:
        key = ts_node.child_by_field_name("key")
        computed = key is not None and key.type == "computed_property_name"
        node = self._make("Property", ts_node, computed=computed)
        self._add_field(node, "key", key)
        self._add_field(node, "value", ts_node.child_by_field_name("value"))
        return node

    def _assignment_pattern(self, ts_node: Node) -> SyntaxNode:
        node = self._make("AssignmentPattern", ts_node)
        self._add_field(node, "left", ts_node.child_by_field_name("left"))
        self._add_field(node, "right", ts_node.child_by_field_name("right"))
        return node

    def _parameter(self, ts_node: Node) -> SyntaxNode:
        # TypeScriptの引数: デフォルト値があればAssignmentPatternにする
        pattern = ts_node.child_by_field_name("pattern")
        value = ts_node.child_by_field_name("value")
        if value is not None:
            node = self._make("AssignmentPattern", ts_node)
            self._add_field(node, "left", pattern)
            self._add_field(node, "right", value)
            return node
        if pattern is not None:
            return self._build(pattern)
        return self._make(ts_node.type, ts_node)

    def _type_declaration(self, ts_node: Node) -> SyntaxNode:
        node_type = (
            "TSTypeAliasDeclaration"
            if ts_node.type == "type_alias_declaration"
            else "TSInterfaceDeclaration"
        )
        node = self._make(node_type, ts_node)
        self._add_field(node, "id", ts_node.child_by_field_name("name"))
        return node

    def _this(self, ts_node: Node) -> SyntaxNode:
        return self._make("ThisExpression", ts_node)


class SourceParser:
    """tree-sitterでJavaScript/TypeScriptをパースし、SyntaxTreeを生成する。

    tree-sitterのParserはスレッド間で共有できないため、スレッドごとに
    保持する。
    """

    _languages: Dict[str, Language] = {}
    _languages_lock = threading.Lock()

    def __init__(self):
        """パーサーを初期化する。"""
        self._local = threading.local()

    @classmethod
    def _get_language(cls, name: str) -> Language:
        with cls._languages_lock:
            if name not in cls._languages:
                if name not in _LANGUAGE_FACTORIES:
                    raise SourceParseError(f"Unsupported language: {name}")
                cls._languages[name] = Language(_LANGUAGE_FACTORIES[name]())
                logger.debug(f"tree-sitter language loaded: {name}")
            return cls._languages[name]

    def _get_parser(self, language: str) -> Parser:
        parsers = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        if language not in parsers:
            parsers[language] = Parser(self._get_language(language))
        return parsers[language]

    @staticmethod
    def language_for(file_path: str) -> str:
        """ファイル拡張子から文法名を取得する。

        Args:
            file_path: ソースファイルのパス

        Returns:
            文法名（"javascript", "typescript", "tsx"）

        Raises:
            SourceParseError: 未対応の拡張子の場合
        """
        suffix = Path(file_path).suffix.lower()
        if suffix not in EXTENSION_LANGUAGES:
            raise SourceParseError(f"Unsupported file extension: {file_path}")
        return EXTENSION_LANGUAGES[suffix]

    def parse_file(self, file_path: str) -> SyntaxTree:
        """ソースファイルをパースする。

        Args:
            file_path: ソースファイルのパス

        Returns:
            SyntaxTree

        Raises:
            SourceParseError: 読み込みまたはパースに失敗した場合
        """
        try:
            source = Path(file_path).read_bytes()
        except OSError as e:
            raise SourceParseError(f"Failed to read {file_path}: {e}") from e
        return self.parse_bytes(source, file_path)

    def parse_string(
        self,
        source_code: str,
        filename: str = "temp.ts",
        language: Optional[str] = None
    ) -> SyntaxTree:
        """文字列からソースコードをパースする。

        Args:
            source_code: ソースコード
            filename: ソースの仮想ファイル名
            language: 文法名（省略時はファイル名の拡張子から判定）

        Returns:
            SyntaxTree
        """
        return self.parse_bytes(source_code.encode("utf-8"), filename, language)

    def parse_bytes(
        self,
        source: bytes,
        filename: str,
        language: Optional[str] = None
    ) -> SyntaxTree:
        language = language or self.language_for(filename)
        parser = self._get_parser(language)

        try:
            ts_tree = parser.parse(source)
        except Exception as e:
            raise SourceParseError(f"Failed to parse {filename}: {e}") from e

        root = ts_tree.root_node
        if root.has_error:
            # 編集途中のソースでも解析は続行する
            logger.warning(f"Syntax errors in {filename}; analysis may be incomplete")

        syntax_root = _Normalizer(source).convert(root)
        return SyntaxTree(root=syntax_root, file_path=filename)
