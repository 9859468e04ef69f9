"""ルール違反の指摘情報モデル。"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from enum import Enum
import os

from .syntax_node import SyntaxNode


class Severity(Enum):
    """指摘の重大度レベル。"""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"

    @classmethod
    def parse(cls, value) -> "Severity":
        """文字列から重大度をパースする。

        Args:
            value: 重大度の値（"error", "warning" など）

        Returns:
            Severity列挙値
        """
        if isinstance(value, Severity):
            return value

        value_str = str(value).lower().strip()

        mapping = {
            "error": cls.ERROR,
            "err": cls.ERROR,
            "warn": cls.WARN,
            "warning": cls.WARN,
            "info": cls.INFO,
            "information": cls.INFO,
        }

        if value_str not in mapping:
            raise ValueError(f"Unknown severity: {value}")
        return mapping[value_str]


@dataclass
class SourceLocation:
    """ソースコードの位置情報。"""
    file_path: str
    line: int
    column: Optional[int] = None

    def __post_init__(self):
        # Windowsパスを正規化
        self.file_path = os.path.normpath(self.file_path)

    def __str__(self) -> str:
        if self.column is not None:
            return f"{self.file_path}:{self.line}:{self.column}"
        return f"{self.file_path}:{self.line}"


@dataclass
class Finding:
    """ルール違反1件の指摘。

    同一ノード・同一ルールコードにつき最大1件。
    """
    rule_code: str
    node: SyntaxNode
    params: Dict[str, str] = field(default_factory=dict)

    # 収集時に追加される情報
    file_path: str = ""
    rule_name: str = ""
    severity: Severity = Severity.WARN
    message: str = ""

    @property
    def location(self) -> SourceLocation:
        """ノードの開始位置から位置情報を取得する。

        Returns:
            SourceLocation（範囲情報がない場合は行0）
        """
        span = self.node.span
        if span is None:
            return SourceLocation(file_path=self.file_path or "<unknown>", line=0)
        return SourceLocation(
            file_path=self.file_path or "<unknown>",
            line=span.start_line,
            column=span.start_column + 1
        )

    def to_dict(self) -> dict:
        """JSON出力用の辞書に変換する。

        Returns:
            指摘の辞書表現
        """
        location = self.location
        return {
            "rule": self.rule_name,
            "code": self.rule_code,
            "severity": self.severity.value,
            "file": location.file_path,
            "line": location.line,
            "column": location.column,
            "message": self.message,
            "params": dict(self.params),
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.value} {self.rule_code} {self.message}"
