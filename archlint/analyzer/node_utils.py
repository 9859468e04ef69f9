"""ESTree形状ノードの共通アクセサー。

ノードが不完全な場合（編集途中のソースなど）でも例外を出さず、
Noneや空文字列を返す。
"""

from typing import Optional

from ..models.syntax_node import SyntaxNode

CALL_EXPRESSION = "CallExpression"
MEMBER_EXPRESSION = "MemberExpression"
AWAIT_EXPRESSION = "AwaitExpression"
IDENTIFIER = "Identifier"
LITERAL = "Literal"

LOOP_STATEMENTS = (
    "ForStatement",
    "ForInStatement",
    "ForOfStatement",
    "WhileStatement",
    "DoWhileStatement",
)

FUNCTION_LITERALS = ("ArrowFunctionExpression", "FunctionExpression")

# 集約コンビネーターの探索を打ち切る関数境界
FUNCTION_BOUNDARIES = FUNCTION_LITERALS + ("FunctionDeclaration", "MethodDefinition")

IMPORT_LIKE = ("ImportDeclaration", "ExportNamedDeclaration", "ExportAllDeclaration")


def identifier_name(node: Optional[SyntaxNode]) -> str:
    """Identifierノードの名前を取得する（それ以外は空文字列）。"""
    if node is None or node.type != IDENTIFIER:
        return ""
    return node.name or ""


def member_property_name(member: Optional[SyntaxNode]) -> str:
    """非計算メンバーアクセスのプロパティ名を取得する。

    Args:
        member: MemberExpressionノード

    Returns:
        プロパティ名、取得できない場合は空文字列
    """
    if member is None or member.type != MEMBER_EXPRESSION:
        return ""
    if member.attr("computed", False):
        return ""
    return identifier_name(member.child("property"))


def callee_member_name(call: Optional[SyntaxNode]) -> str:
    """呼び出しのcalleeがメンバーアクセスならそのプロパティ名を取得する。"""
    if call is None or call.type != CALL_EXPRESSION:
        return ""
    return member_property_name(call.child("callee"))


def dotted_callee(call: Optional[SyntaxNode]) -> str:
    """`Promise.all` のような "オブジェクト名.メソッド名" を取得する。

    Args:
        call: CallExpressionノード

    Returns:
        ドット区切りの名前、単純な形でない場合は空文字列
    """
    if call is None or call.type != CALL_EXPRESSION:
        return ""
    callee = call.child("callee")
    prop = member_property_name(callee)
    if not prop:
        return ""
    obj = identifier_name(callee.child("object"))
    if not obj:
        return ""
    return f"{obj}.{prop}"


def is_call_argument(call: SyntaxNode, node: SyntaxNode) -> bool:
    """nodeがcallの引数（calleeではない）かを確認する。"""
    return any(arg is node for arg in call.child_list("arguments"))


def string_value(node: Optional[SyntaxNode]) -> Optional[str]:
    """文字列リテラルの値を取得する。"""
    if node is None or node.type != LITERAL:
        return None
    value = node.attr("value")
    return value if isinstance(value, str) else None


def import_source(node: SyntaxNode) -> Optional[str]:
    """import/re-export宣言のモジュール指定子を取得する。"""
    if node.type not in IMPORT_LIKE:
        return None
    return string_value(node.child("source"))


def declared_name(node: SyntaxNode) -> str:
    """関数・メソッド宣言の名前を取得する。

    MethodDefinition/Propertyはkey、FunctionDeclaration/VariableDeclarator
    はidから名前を取る。
    """
    if node.type in ("MethodDefinition", "Property"):
        if node.attr("computed", False):
            return ""
        return identifier_name(node.child("key"))
    return identifier_name(node.child("id"))
