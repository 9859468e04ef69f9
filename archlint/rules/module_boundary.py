"""featureモジュール境界のimport検出ルール。"""

from typing import Dict

from ..analyzer.node_utils import IMPORT_LIKE, import_source
from ..models.syntax_node import SyntaxNode
from .base import Handler, Rule, RuleContext

CROSS_MODULE_IMPORT = "CrossModuleImport"
MODULE_IMPORTS_ORCHESTRATION = "ModuleImportsOrchestration"


class NoCrossFeatureImportRule(Rule):
    """features/ 内から別のfeatureをimportするパターンを検出する。"""

    name = "no-cross-feature-import"
    description = "複数featureをまたぐ処理は flows/ に切り出す"
    messages = {
        CROSS_MODULE_IMPORT: (
            "features/ 内で別のfeatureをimportしないでください（'{source}'）。"
            "複数featureをまたぐ処理は flows/ に切り出してください。"
        ),
    }

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        resolver = context.resolver
        if resolver.module_id_of(context.file_path) is None:
            return {}

        def check(node: SyntaxNode) -> None:
            source = import_source(node)
            if source is None:
                return
            if resolver.resolve(context.file_path, source):
                context.report(CROSS_MODULE_IMPORT, node, {"source": source})

        return {selector: check for selector in IMPORT_LIKE}


class NoFeaturesImportFlowsRule(Rule):
    """features/ 内から flows/ をimportする逆向きの依存を検出する。"""

    name = "no-features-import-flows"
    description = "依存関係は flows -> features の方向にする"
    messages = {
        MODULE_IMPORTS_ORCHESTRATION: (
            "features/ 内から flows/ をimportしないでください（'{source}'）。"
            "依存関係は flows -> features の方向であるべきです。"
        ),
    }

    def create(self, context: RuleContext) -> Dict[str, Handler]:
        resolver = context.resolver
        if not resolver.is_inside_module_root(context.file_path):
            return {}

        def check(node: SyntaxNode) -> None:
            source = import_source(node)
            if source is None:
                return
            if resolver.imports_orchestration_layer(context.file_path, source):
                context.report(MODULE_IMPORTS_ORCHESTRATION, node, {"source": source})

        return {selector: check for selector in IMPORT_LIKE}
