"""サーバーファイル（SvelteKitの +server.ts など）向けのルール。"""

from typing import Dict

from ..analyzer.node_utils import IMPORT_LIKE, identifier_name, import_source
from ..models.syntax_node import SyntaxNode
from .base import Handler, Rule, RuleContext

TRY_CATCH_IN_SERVER_HANDLER = "TryCatchInServerHandler"
DIRECT_ORM_IN_SERVER = "DirectOrmInServer"


def _basename(file_path: str) -> str:
    return file_path.replace("\\", "/").rsplit("/", 1)[-1]


class NoTryCatchInServerRule(Rule):
    """エンドポイントファイルでのtry-catchを検出する。

    エラーは hooks.server.ts で一括してハンドリングする。
    """

    name = "no-try-catch-in-server"
    description = "エラーは hooks.server.ts で一括ハンドリングする"
    messages = {
        TRY_CATCH_IN_SERVER_HANDLER: (
            "+server.ts / +page.server.ts では try-catch を使用しないでください。"
            "エラーは hooks.server.ts で一括ハンドリングしてください。"
        ),
    }

    SUFFIXES = ("+server.ts", "+page.server.ts", "+server.js", "+page.server.js")

    def applies_to(self, file_path: str) -> bool:
        return _basename(file_path).endswith(self.SUFFIXES)

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check(node: SyntaxNode) -> None:
            context.report(TRY_CATCH_IN_SERVER_HANDLER, node)

        return {"TryStatement": check}


class NoPrismaInServerRule(Rule):
    """サーバーファイルでのORMクライアント直接利用を検出する。

    hooks.server.* は認証初期化などで直接利用するため対象外。
    """

    name = "no-prisma-in-server"
    description = "データベースアクセスはリポジトリ層を経由する"
    messages = {
        DIRECT_ORM_IN_SERVER: (
            ".server.ts / .server.js では prisma を直接使用しないでください。"
            "データベースアクセスはリポジトリ層を経由してください。"
        ),
    }

    SUFFIXES = (".server.ts", ".server.js", "+server.ts", "+server.js")
    EXEMPT_FILES = ("hooks.server.ts", "hooks.server.js")
    ORM_IDENTIFIER = "prisma"

    def applies_to(self, file_path: str) -> bool:
        basename = _basename(file_path)
        if basename in self.EXEMPT_FILES:
            return False
        return basename.endswith(self.SUFFIXES)

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        def check_import(node: SyntaxNode) -> None:
            source = import_source(node)
            if source is not None and self.ORM_IDENTIFIER in source:
                context.report(DIRECT_ORM_IN_SERVER, node, {"source": source})

        def check_member(node: SyntaxNode) -> None:
            obj = identifier_name(node.child("object"))
            if obj.lower() == self.ORM_IDENTIFIER:
                context.report(DIRECT_ORM_IN_SERVER, node, {"source": obj})

        handlers: Dict[str, Handler] = {selector: check_import for selector in IMPORT_LIKE}
        handlers["MemberExpression"] = check_member
        return handlers
