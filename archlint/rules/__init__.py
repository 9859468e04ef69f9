"""アーキテクチャ規約ルール。"""

from typing import Dict, Iterable, List, Optional, Type
import logging

from ..models.finding import Severity
from .base import Rule, RuleContext
from .module_boundary import NoCrossFeatureImportRule, NoFeaturesImportFlowsRule
from .n_plus_one import NoNPlusOneQueryRule
from .naming import (
    NoDataInputParamsArgRule,
    NoDefaultParamRule,
    NoFindBySearchByMethodRule,
    NoInputOutputParamsTypeRule,
    NoWithRelationMethodRule,
)
from .server_files import NoPrismaInServerRule, NoTryCatchInServerRule
from .testing import NoExpectInIfRule

logger = logging.getLogger(__name__)

ALL_RULES: List[Type[Rule]] = [
    NoNPlusOneQueryRule,
    NoCrossFeatureImportRule,
    NoFeaturesImportFlowsRule,
    NoExpectInIfRule,
    NoTryCatchInServerRule,
    NoPrismaInServerRule,
    NoFindBySearchByMethodRule,
    NoWithRelationMethodRule,
    NoInputOutputParamsTypeRule,
    NoDataInputParamsArgRule,
    NoDefaultParamRule,
]

RULES_BY_NAME: Dict[str, Type[Rule]] = {rule.name: rule for rule in ALL_RULES}


def get_rule(name: str) -> Type[Rule]:
    """名前からルールクラスを取得する。

    Args:
        name: ルール名（例: "no-n-plus-one-query"）

    Returns:
        ルールクラス

    Raises:
        KeyError: 未知のルール名の場合
    """
    if name not in RULES_BY_NAME:
        raise KeyError(f"Unknown rule: {name}")
    return RULES_BY_NAME[name]


def build_rules(
    enabled: Optional[Iterable[str]] = None,
    disabled: Optional[Iterable[str]] = None,
    severity_overrides: Optional[Dict[str, str]] = None
) -> List[Rule]:
    """設定に従ってルールインスタンスを生成する。

    Args:
        enabled: 有効にするルール名（Noneまたは空の場合は全ルール）
        disabled: 無効にするルール名
        severity_overrides: ルール名から重大度へのマッピング

    Returns:
        登録順のルールインスタンスのリスト
    """
    enabled_set = set(enabled or [])
    disabled_set = set(disabled or [])
    severity_overrides = severity_overrides or {}

    for name in enabled_set | disabled_set | set(severity_overrides):
        get_rule(name)

    rules: List[Rule] = []
    for rule_cls in ALL_RULES:
        if enabled_set and rule_cls.name not in enabled_set:
            continue
        if rule_cls.name in disabled_set:
            continue

        severity = None
        if rule_cls.name in severity_overrides:
            severity = Severity.parse(severity_overrides[rule_cls.name])
        rules.append(rule_cls(severity=severity))

    logger.debug(f"Built {len(rules)} rules: {[r.name for r in rules]}")
    return rules


__all__ = [
    "ALL_RULES",
    "RULES_BY_NAME",
    "Rule",
    "RuleContext",
    "build_rules",
    "get_rule",
]
