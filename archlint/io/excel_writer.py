"""指摘のExcel出力モジュール。"""

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from pathlib import Path
import logging

from openpyxl import Workbook
from openpyxl.styles import PatternFill, Font, Alignment, Border, Side

from ..models.finding import Finding, Severity
from .report_writer import sort_findings

logger = logging.getLogger(__name__)


class ExcelWriter:
    """指摘一覧とサマリーをExcelファイルに書き込む。"""

    # 重大度ごとの色（RGB hex、#なし）
    SEVERITY_COLORS: Dict[Severity, str] = {
        Severity.ERROR: "FFC7CE",  # 赤 - 修正必要
        Severity.WARN: "FFEB9C",   # 黄 - レビュー必要
        Severity.INFO: "D9D9D9",   # 灰 - 参考
    }

    FINDING_HEADERS = ["ファイル", "行", "列", "重大度", "ルール", "指摘コード", "メッセージ"]
    FINDING_COLUMN_WIDTHS = [60, 8, 8, 10, 30, 28, 80]

    FINDINGS_SHEET = "Findings"
    SUMMARY_SHEET = "Summary"

    def __init__(self, output_file: str):
        """Excelライターを初期化する。

        Args:
            output_file: 出力Excelファイルのパス
        """
        self.output_file = Path(output_file)

    def write_findings(
        self,
        findings: Iterable[Finding],
        failed_files: Optional[List[str]] = None
    ) -> None:
        """指摘一覧シートとサマリーシートを含むワークブックを保存する。

        Args:
            findings: 出力する指摘
            failed_files: 解析に失敗したファイルのパス
        """
        ordered = sort_findings(findings)

        wb = Workbook()
        ws = wb.active
        ws.title = self.FINDINGS_SHEET

        self._add_headers(ws)
        for row_num, finding in enumerate(ordered, 2):
            self._write_finding_row(ws, row_num, finding)
        self._adjust_column_widths(ws)
        ws.freeze_panes = "A2"

        self._write_summary(wb, ordered, failed_files or [])

        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        wb.save(self.output_file)
        logger.info(f"Findings written to {self.output_file}")

    @staticmethod
    def _thin_border() -> Border:
        return Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin")
        )

    def _add_headers(self, ws) -> None:
        """ヘッダー行を書き込む。

        Args:
            ws: ワークシートオブジェクト
        """
        header_alignment = Alignment(horizontal="center", vertical="center")
        header_fill = PatternFill(
            start_color="4472C4",
            end_color="4472C4",
            fill_type="solid"
        )
        white_font = Font(bold=True, color="FFFFFF")
        thin_border = self._thin_border()

        for i, header in enumerate(self.FINDING_HEADERS, 1):
            cell = ws.cell(row=1, column=i)
            cell.value = header
            cell.font = white_font
            cell.alignment = header_alignment
            cell.fill = header_fill
            cell.border = thin_border

    def _write_finding_row(self, ws, row_num: int, finding: Finding) -> None:
        """1行分の指摘を書き込む。

        Args:
            ws: ワークシートオブジェクト
            row_num: 書き込む行番号
            finding: 書き込む指摘
        """
        thin_border = self._thin_border()
        location = finding.location
        values = [
            location.file_path,
            location.line,
            location.column,
            finding.severity.value,
            finding.rule_name,
            finding.rule_code,
            finding.message,
        ]

        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row_num, column=col)
            cell.value = value
            cell.border = thin_border

        # 重大度
        color = self.SEVERITY_COLORS[finding.severity]
        cell_severity = ws.cell(row=row_num, column=4)
        cell_severity.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        cell_severity.alignment = Alignment(horizontal="center")

        # メッセージ
        ws.cell(row=row_num, column=7).alignment = Alignment(wrap_text=True, vertical="top")

    def _adjust_column_widths(self, ws) -> None:
        for i, width in enumerate(self.FINDING_COLUMN_WIDTHS, 1):
            col_letter = ws.cell(row=1, column=i).column_letter
            ws.column_dimensions[col_letter].width = width

    def _write_summary(self, wb, findings: List[Finding], failed_files: List[str]) -> None:
        """指摘コードごとの件数を含むサマリーシートを追加する。

        Args:
            wb: ワークブックオブジェクト
            findings: 全指摘のリスト
            failed_files: 解析に失敗したファイルのパス
        """
        ws = wb.create_sheet(self.SUMMARY_SHEET)

        total = len(findings)
        counts = Counter((f.rule_name, f.rule_code, f.severity) for f in findings)

        # タイトルを書き込む
        ws["A1"] = "指摘サマリー"
        ws["A1"].font = Font(bold=True, size=14)
        ws.merge_cells("A1:D1")

        ws["A2"] = f"生成日時: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws.merge_cells("A2:D2")

        headers = ["ルール", "指摘コード", "件数", "割合"]
        header_font = Font(bold=True)
        thin_border = self._thin_border()

        for i, header in enumerate(headers, 1):
            cell = ws.cell(row=4, column=i)
            cell.value = header
            cell.font = header_font
            cell.border = thin_border
            cell.alignment = Alignment(horizontal="center")

        row = 5
        for (rule_name, rule_code, severity), count in sorted(counts.items(), key=lambda item: (-item[1], item[0][1])):
            color = self.SEVERITY_COLORS[severity]

            cell_rule = ws.cell(row=row, column=1)
            cell_rule.value = rule_name
            cell_rule.border = thin_border

            cell_code = ws.cell(row=row, column=2)
            cell_code.value = rule_code
            cell_code.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            cell_code.border = thin_border

            cell_count = ws.cell(row=row, column=3)
            cell_count.value = count
            cell_count.alignment = Alignment(horizontal="right")
            cell_count.border = thin_border

            cell_pct = ws.cell(row=row, column=4)
            cell_pct.value = f"{count / total * 100:.1f}%" if total > 0 else "0%"
            cell_pct.alignment = Alignment(horizontal="right")
            cell_pct.border = thin_border

            row += 1

        # 合計行
        cell_total_label = ws.cell(row=row, column=1)
        cell_total_label.value = "合計"
        cell_total_label.font = Font(bold=True)
        cell_total_label.border = thin_border

        cell_total_count = ws.cell(row=row, column=3)
        cell_total_count.value = total
        cell_total_count.font = Font(bold=True)
        cell_total_count.alignment = Alignment(horizontal="right")
        cell_total_count.border = thin_border

        if failed_files:
            row += 2
            ws.cell(row=row, column=1).value = "解析失敗ファイル"
            ws.cell(row=row, column=1).font = Font(bold=True)
            for path in failed_files:
                row += 1
                ws.cell(row=row, column=1).value = path

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 28
        ws.column_dimensions["C"].width = 10
        ws.column_dimensions["D"].width = 10
