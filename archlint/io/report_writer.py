"""指摘のテキスト・JSON出力モジュール。"""

from collections import Counter
from typing import Iterable, List, Optional
from pathlib import Path
import json
import logging

from ..models.finding import Finding, Severity

logger = logging.getLogger(__name__)

TEXT_FORMAT = "text"
JSON_FORMAT = "json"


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    """パス・行・列・指摘コードの順に並べ替える。"""
    def key(finding: Finding):
        location = finding.location
        return (location.file_path, location.line, location.column or 0, finding.rule_code)

    return sorted(findings, key=key)


class ReportWriter:
    """指摘をテキストまたはJSONとして出力する。"""

    def __init__(self, findings: Iterable[Finding], failed_files: Optional[List[str]] = None):
        """レポートライターを初期化する。

        Args:
            findings: 出力する指摘
            failed_files: 解析に失敗したファイルのパス
        """
        self.findings = sort_findings(findings)
        self.failed_files = list(failed_files or [])

    def render_text(self) -> str:
        """ファイルごとにまとめたテキストレポートを生成する。

        Returns:
            レポート文字列（末尾にサマリー行）
        """
        lines: List[str] = []
        current_file = None

        for finding in self.findings:
            location = finding.location
            if location.file_path != current_file:
                if current_file is not None:
                    lines.append("")
                lines.append(location.file_path)
                current_file = location.file_path

            column = location.column if location.column is not None else 0
            lines.append(
                f"  {location.line}:{column}  {finding.severity.value:<5}  "
                f"{finding.message}  {finding.rule_name}/{finding.rule_code}"
            )

        if lines:
            lines.append("")

        for path in self.failed_files:
            lines.append(f"{path}: failed to analyze")

        lines.append(self.summary())
        return "\n".join(lines) + "\n"

    def render_json(self) -> str:
        """JSON形式のレポートを生成する。

        Returns:
            JSON文字列
        """
        document = {
            "findings": [f.to_dict() for f in self.findings],
            "failed_files": self.failed_files,
            "summary": dict(self.count_by_severity()),
        }
        return json.dumps(document, ensure_ascii=False, indent=2)

    def count_by_severity(self) -> Counter:
        counts: Counter = Counter({severity.value: 0 for severity in Severity})
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    def summary(self) -> str:
        """サマリー行を生成する。"""
        counts = self.count_by_severity()
        total = len(self.findings)
        text = (
            f"{total} problem{'s' if total != 1 else ''} "
            f"({counts['error']} errors, {counts['warn']} warnings, {counts['info']} info)"
        )
        if self.failed_files:
            text += f", {len(self.failed_files)} files failed"
        return text

    def write(self, output_path: str, fmt: str = TEXT_FORMAT) -> None:
        """レポートをファイルに書き込む。

        Args:
            output_path: 出力先パス
            fmt: "text" または "json"

        Raises:
            ValueError: 未対応の形式の場合
        """
        if fmt == TEXT_FORMAT:
            content = self.render_text()
        elif fmt == JSON_FORMAT:
            content = self.render_json()
        else:
            raise ValueError(f"Unsupported report format: {fmt}")

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Report written to {output_path}")
