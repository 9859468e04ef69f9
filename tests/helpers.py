"""テスト用のESTree辞書ビルダー。"""

from archlint.io.estree_loader import load_estree
from archlint.models.syntax_node import SyntaxTree


def ident(name):
    return {"type": "Identifier", "name": name}


def literal(value):
    return {"type": "Literal", "value": value}


def _expr(value):
    # 文字列は識別子またはドット区切りのメンバーアクセスとみなす
    if isinstance(value, str):
        return dotted(value)
    return value


def member(obj, prop, computed=False):
    return {
        "type": "MemberExpression",
        "object": _expr(obj),
        "property": ident(prop) if isinstance(prop, str) else prop,
        "computed": computed,
    }


def dotted(path):
    """"a.b.c" をメンバーアクセスの連鎖に変換する。"""
    parts = path.split(".")
    node = ident(parts[0])
    for part in parts[1:]:
        node = member(node, part)
    return node


def call(callee, *args):
    return {
        "type": "CallExpression",
        "callee": _expr(callee),
        "arguments": [_expr(a) for a in args],
    }


def await_(argument):
    return {"type": "AwaitExpression", "argument": argument}


def expr(expression):
    return {"type": "ExpressionStatement", "expression": expression}


def _statements(body):
    return [b if b["type"].endswith(("Statement", "Declaration")) else expr(b) for b in body]


def block(*body):
    return {"type": "BlockStatement", "body": _statements(body)}


def arrow(*body, params=("item",)):
    """本体が1つの式ならその式を本体とし、それ以外はブロックにする。"""
    if len(body) == 1 and not body[0]["type"].endswith("Statement"):
        fn_body = body[0]
    else:
        fn_body = block(*body)
    return {
        "type": "ArrowFunctionExpression",
        "params": [ident(p) if isinstance(p, str) else p for p in params],
        "body": fn_body,
    }


def func(*body, params=("item",), name=None):
    node = {"type": "FunctionExpression"}
    if name:
        node["id"] = ident(name)
    node["params"] = [ident(p) if isinstance(p, str) else p for p in params]
    node["body"] = block(*body)
    return node


def func_decl(name, *body, params=()):
    return {
        "type": "FunctionDeclaration",
        "id": ident(name),
        "params": [ident(p) if isinstance(p, str) else p for p in params],
        "body": block(*body),
    }


def for_of(left, right, *body):
    return {
        "type": "ForOfStatement",
        "left": ident(left),
        "right": _expr(right),
        "body": block(*body),
    }


def for_stmt(*body):
    return {
        "type": "ForStatement",
        "init": None,
        "test": None,
        "update": None,
        "body": block(*body),
    }


def while_stmt(test, *body):
    return {"type": "WhileStatement", "test": _expr(test), "body": block(*body)}


def if_stmt(test, consequent, alternate=None):
    node = {"type": "IfStatement", "test": _expr(test), "consequent": block(*consequent)}
    if alternate is not None:
        node["alternate"] = block(*alternate)
    return node


def try_stmt(*body):
    return {
        "type": "TryStatement",
        "block": block(*body),
        "handler": {"type": "CatchClause", "param": ident("e"), "body": block()},
    }


def var_decl(name, init):
    return {
        "type": "VariableDeclaration",
        "kind": "const",
        "declarations": [
            {"type": "VariableDeclarator", "id": ident(name), "init": init},
        ],
    }


def method(name, params=(), body=()):
    return {
        "type": "MethodDefinition",
        "key": ident(name),
        "computed": False,
        "value": func(*body, params=params),
    }


def class_decl(name, *methods):
    return {
        "type": "ClassDeclaration",
        "id": ident(name),
        "body": {"type": "ClassBody", "body": list(methods)},
    }


def default_param(name, value):
    left = ident(name) if isinstance(name, str) else name
    return {"type": "AssignmentPattern", "left": left, "right": value}


def import_decl(source):
    return {
        "type": "ImportDeclaration",
        "specifiers": [
            {"type": "ImportDefaultSpecifier", "local": ident("imported")},
        ],
        "source": literal(source),
    }


def export_all(source):
    return {"type": "ExportAllDeclaration", "exported": None, "source": literal(source)}


def export_named(source):
    return {"type": "ExportNamedDeclaration", "specifiers": [], "source": literal(source)}


def type_alias(name):
    return {"type": "TSTypeAliasDeclaration", "id": ident(name), "typeAnnotation": {"type": "TSTypeLiteral", "members": []}}


def interface(name):
    return {"type": "TSInterfaceDeclaration", "id": ident(name), "body": {"type": "TSInterfaceBody", "body": []}}


def program(*body):
    return {"type": "Program", "sourceType": "module", "body": _statements(body)}


def make_tree(*body, file_path="src/app.ts") -> SyntaxTree:
    return load_estree(program(*body), file_path)
