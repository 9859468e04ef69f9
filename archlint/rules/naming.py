"""宣言名・引数に関する命名ルール。"""

from typing import Callable, Dict, List
import re

from ..analyzer.node_utils import FUNCTION_LITERALS, declared_name, identifier_name
from ..models.syntax_node import SyntaxNode
from .base import Handler, Rule, RuleContext

CONDITIONAL_FINDER_METHOD = "ConditionalFinderMethod"
RELATION_SUFFIX_METHOD = "RelationSuffixMethod"
PARAMETER_OBJECT_TYPE = "ParameterObjectType"
GENERIC_PARAMETER_NAME = "GenericParameterName"
DEFAULT_PARAMETER = "DefaultParameter"

FUNCTION_NODES = FUNCTION_LITERALS + ("FunctionDeclaration",)


def _declaration_handlers(check_name: Callable[[SyntaxNode, str], None]) -> Dict[str, Handler]:
    """関数として宣言された名前を検査するハンドラー表を生成する。

    メソッド定義、関数宣言、関数リテラルで初期化される変数とプロパティが対象。
    """
    def on_named(node: SyntaxNode) -> None:
        check_name(node, declared_name(node))

    def on_initialized(node: SyntaxNode) -> None:
        value_field = "init" if node.type == "VariableDeclarator" else "value"
        value = node.child(value_field)
        if value is not None and value.type in FUNCTION_LITERALS:
            check_name(node, declared_name(node))

    return {
        "MethodDefinition": on_named,
        "FunctionDeclaration": on_named,
        "VariableDeclarator": on_initialized,
        "Property": on_initialized,
    }


class NoFindBySearchByMethodRule(Rule):
    """findByXxx / searchByXxx という条件別メソッドを検出する。"""

    name = "no-findby-searchby-method"
    description = "条件別メソッドを作らずwhereオブジェクトの引数で統合する"
    messages = {
        CONDITIONAL_FINDER_METHOD: (
            "'{name}' のような条件別メソッドを作成しないでください。"
            "find({{ id, userId, status }}) のように条件オブジェクトで統合してください。"
        ),
    }

    PATTERN = re.compile(r"^(findBy|searchBy)[A-Z]")

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check_name(node: SyntaxNode, name: str) -> None:
            if name and self.PATTERN.search(name):
                context.report(CONDITIONAL_FINDER_METHOD, node, {"name": name})

        return _declaration_handlers(check_name)


class NoWithRelationMethodRule(Rule):
    """Repositoryファイル内のfindXxxWithYyyのような関連取得専用メソッドを検出する。"""

    name = "no-with-relation-method"
    description = "関連の取得はincludeオプションで統合する"
    messages = {
        RELATION_SUFFIX_METHOD: (
            "'{name}' のような関連テーブル取得専用メソッドを作成しないでください。"
            "includeオプションで統合してください。"
        ),
    }

    PATTERN = re.compile(r"With[A-Z]")

    def applies_to(self, file_path: str) -> bool:
        return "Repository" in file_path

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check_name(node: SyntaxNode, name: str) -> None:
            if name and self.PATTERN.search(name):
                context.report(RELATION_SUFFIX_METHOD, node, {"name": name})

        return _declaration_handlers(check_name)


class NoInputOutputParamsTypeRule(Rule):
    """XxxInput / XxxOutput / XxxParams / XxxResult という型定義を検出する。"""

    name = "no-input-output-params-type"
    description = "引数をまとめる型を作らず関数の引数で直接受け取る"
    messages = {
        PARAMETER_OBJECT_TYPE: (
            "'{name}' のようなInput/Output/Params型を作成しないでください。"
            "関数の引数は直接受け取ってください。"
        ),
    }

    PATTERN = re.compile(r"(Input|Output|Params|Result)$")

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check(node: SyntaxNode) -> None:
            name = identifier_name(node.child("id"))
            if name and self.PATTERN.search(name):
                context.report(PARAMETER_OBJECT_TYPE, node, {"name": name})

        return {
            "TSTypeAliasDeclaration": check,
            "TSInterfaceDeclaration": check,
        }


class _ParameterRule(Rule):
    """関数の各引数を検査するルールの共通部分。"""

    def check_param(self, context: RuleContext, param: SyntaxNode) -> None:
        raise NotImplementedError

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check(node: SyntaxNode) -> None:
            params: List[SyntaxNode] = node.child_list("params")
            for param in params:
                self.check_param(context, param)

        return {node_type: check for node_type in FUNCTION_NODES}


class NoDataInputParamsArgRule(_ParameterRule):
    """data / input / params などの汎用的な引数名を検出する。

    分割代入の引数は具体的なプロパティ名を使っているため対象外。
    """

    name = "no-data-input-params-arg"
    description = "引数は具体的な名前で受け取る"
    messages = {
        GENERIC_PARAMETER_NAME: (
            "'{name}' という引数名は避けてください。"
            "userId, productId など具体的な名前で直接受け取ってください。"
        ),
    }

    FORBIDDEN_NAMES = frozenset(
        {"data", "input", "params", "args", "options", "opts", "config"}
    )

    def check_param(self, context: RuleContext, param: SyntaxNode) -> None:
        name = identifier_name(param)
        if name and name.lower() in self.FORBIDDEN_NAMES:
            context.report(GENERIC_PARAMETER_NAME, param, {"name": name})


class NoDefaultParamRule(_ParameterRule):
    """デフォルト値付きの引数を検出する。"""

    name = "no-default-param"
    description = "デフォルト値に頼らず呼び出し側で明示的に指定する"
    messages = {
        DEFAULT_PARAMETER: (
            "引数 '{name}' にデフォルト値を設定しないでください。"
            "呼び出し側で明示的に指定してください。"
        ),
    }

    PATTERN_LABELS = {
        "ObjectPattern": "{...}",
        "ArrayPattern": "[...]",
    }

    def check_param(self, context: RuleContext, param: SyntaxNode) -> None:
        if param.type != "AssignmentPattern":
            return
        left = param.child("left")
        name = identifier_name(left)
        if not name:
            name = self.PATTERN_LABELS.get(left.type, "unknown") if left is not None else "unknown"
        context.report(DEFAULT_PARAMETER, param, {"name": name})
