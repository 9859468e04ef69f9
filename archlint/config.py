"""設定管理モジュール。"""

from dataclasses import dataclass, field, fields
from typing import List, Dict, Optional, Any, Iterable
from pathlib import Path
import os
import logging

import yaml

from .analyzer.call_classifier import (
    DEFAULT_ACCESSOR_TOKENS,
    DEFAULT_DATA_ACCESS_TOKENS,
    DEFAULT_DATA_ACCESS_VERBS,
)
from .analyzer.module_resolver import (
    DEFAULT_INTRA_MODULE_DIRS,
    DEFAULT_MODULE_MARKER,
    DEFAULT_ORCHESTRATION_MARKER,
    DEFAULT_RELATIVE_DEPTH_THRESHOLD,
)
from .analyzer.scope_tracker import (
    DEFAULT_AGGREGATE_COMBINATORS,
    DEFAULT_ITERATION_METHODS,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_EXTENSIONS = (
    ".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs",
)

# 外部パーサーが出力したESTree JSON
ESTREE_SUFFIX = ".estree.json"

DEFAULT_EXCLUDE_DIRS = (
    ".git",
    "node_modules",
    "dist",
    "build",
    ".svelte-kit",
    "coverage",
)

LOG_LEVEL_ENV = "ARCHLINT_LOG_LEVEL"


class ConfigError(Exception):
    """設定ファイルの読み込み・検証エラー。"""
    pass


@dataclass
class Config:
    """アプリケーション設定。"""

    # モジュール境界
    module_marker: str = DEFAULT_MODULE_MARKER
    orchestration_marker: str = DEFAULT_ORCHESTRATION_MARKER
    intra_module_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_INTRA_MODULE_DIRS))
    relative_depth_threshold: int = DEFAULT_RELATIVE_DEPTH_THRESHOLD

    # データアクセス呼び出しの分類
    data_access_tokens: List[str] = field(default_factory=lambda: list(DEFAULT_DATA_ACCESS_TOKENS))
    accessor_tokens: List[str] = field(default_factory=lambda: list(DEFAULT_ACCESSOR_TOKENS))
    data_access_verbs: List[str] = field(default_factory=lambda: list(DEFAULT_DATA_ACCESS_VERBS))

    # スコープ追跡
    iteration_methods: List[str] = field(default_factory=lambda: list(DEFAULT_ITERATION_METHODS))
    aggregate_combinators: List[str] = field(default_factory=lambda: list(DEFAULT_AGGREGATE_COMBINATORS))

    # ルール選択
    enabled_rules: List[str] = field(default_factory=list)  # 空の場合は全ルール
    disabled_rules: List[str] = field(default_factory=list)
    severity_overrides: Dict[str, str] = field(default_factory=dict)

    # ファイル探索
    source_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))
    exclude_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))

    # 処理設定
    workers: int = 4  # 並列に処理するファイル数

    # ロギング設定
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, file_path: str) -> "Config":
        """YAMLファイルから設定を読み込む。

        Args:
            file_path: YAML設定ファイルのパス

        Returns:
            Configインスタンス

        Raises:
            ConfigError: ファイルが読めない、または形式が不正な場合
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read configuration {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {file_path}")

        config = cls.from_dict(data)

        # ログレベルは環境変数が優先
        config.log_level = os.getenv(LOG_LEVEL_ENV, config.log_level)

        logger.info(f"Configuration loaded from {file_path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """辞書から設定を作成する。

        Args:
            data: 設定辞書

        Returns:
            Configインスタンス

        Raises:
            ConfigError: 未知のキー、または型が合わない値を含む場合
        """
        config = cls()
        known = {f.name for f in fields(cls)}

        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key, value in data.items():
            if value is None:
                continue
            setattr(config, key, cls._coerce(key, value, getattr(config, key)))

        return config

    @staticmethod
    def _coerce(key: str, value: Any, default: Any) -> Any:
        """値をデフォルト値と同じ型に揃える。

        数値項目は "4" のような文字列も受け付ける。

        Args:
            key: 設定キー
            value: YAMLから読み込んだ値
            default: デフォルト値（型の判定に使用）

        Returns:
            変換後の値

        Raises:
            ConfigError: 変換できない場合
        """
        if isinstance(default, int):
            if isinstance(value, (bool, float)):
                raise ConfigError(f"{key} must be an integer: {value!r}")
            try:
                return int(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be an integer: {value!r}") from e

        if isinstance(default, list):
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{key} must be a list of strings: {value!r}")
            return list(value)

        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise ConfigError(f"{key} must be a mapping: {value!r}")
            return {str(k): str(v) for k, v in value.items()}

        # 残りは文字列項目（log_fileを含む）
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string: {value!r}")
        return value

    def validate(self) -> List[str]:
        """設定を検証する。

        Returns:
            検証エラーのリスト（有効な場合は空）
        """
        from .models.finding import Severity
        from .rules import RULES_BY_NAME

        errors = []

        if not self.module_marker:
            errors.append("module_markerは必須です")
        if self.relative_depth_threshold < 1:
            errors.append("relative_depth_thresholdは1以上である必要があります")
        if self.workers < 1:
            errors.append("workersは1以上である必要があります")

        for name in list(self.enabled_rules) + list(self.disabled_rules) + list(self.severity_overrides):
            if name not in RULES_BY_NAME:
                errors.append(f"未知のルールです: {name}")

        for name, severity in self.severity_overrides.items():
            try:
                Severity.parse(severity)
            except ValueError:
                errors.append(f"不正な重大度です: {name}={severity}")

        for combinator in self.aggregate_combinators:
            if "." not in combinator:
                errors.append(f"集約コンビネーターは 'Object.method' 形式で指定してください: {combinator}")

        return errors

    def to_dict(self) -> dict:
        """設定を辞書に変換する。

        Returns:
            辞書形式の設定
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def save_yaml(self, file_path: str) -> None:
        """設定をYAMLファイルに保存。

        Args:
            file_path: 保存先パス
        """
        # 出力先ディレクトリが存在しない場合は作成
        output_path = Path(file_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = self.to_dict()
        if not self.log_file:
            data.pop("log_file")

        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(
                data,
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False
            )

        logger.info(f"Configuration saved to {file_path}")

    def is_excluded(self, path: Path) -> bool:
        """除外ディレクトリ配下のパスかを確認する。"""
        return any(part in self.exclude_dirs for part in path.parts)

    def is_source_file(self, path: Path) -> bool:
        """解析対象のファイルかを確認する。"""
        name = path.name
        if name.endswith(ESTREE_SUFFIX):
            return True
        return path.suffix in self.source_extensions and not name.endswith(".d.ts")

    def get_source_files(self, paths: Iterable[str]) -> List[str]:
        """指定されたパスから解析対象のソースファイルを取得する。

        Args:
            paths: ファイルまたはディレクトリのパス

        Returns:
            ソースファイルパスのリスト（ソート済み、重複なし）
        """
        source_files = set()

        for raw_path in paths:
            path = Path(raw_path)
            if path.is_file():
                # 明示的に指定されたファイルは除外設定に関係なく対象
                if self.is_source_file(path):
                    source_files.add(str(path))
                else:
                    logger.warning(f"Not a supported source file: {path}")
            elif path.is_dir():
                for candidate in path.rglob("*"):
                    if not candidate.is_file() or not self.is_source_file(candidate):
                        continue
                    if self.is_excluded(candidate.relative_to(path)):
                        continue
                    source_files.add(str(candidate))
            else:
                logger.warning(f"Path does not exist: {path}")

        logger.debug(f"Found {len(source_files)} source files")
        return sorted(source_files)
