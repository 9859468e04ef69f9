"""レポート出力のテスト。"""

import json
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from openpyxl import load_workbook

from archlint.io.excel_writer import ExcelWriter
from archlint.io.report_writer import ReportWriter
from archlint.models.finding import Finding, Severity
from archlint.models.syntax_node import SourceSpan, SyntaxNode


def _finding(path, line, column, code="LoopDataAccess", severity=Severity.ERROR, rule="no-n-plus-one-query"):
    node = SyntaxNode(type="CallExpression", span=SourceSpan(line, column, line, column + 10))
    return Finding(
        rule_code=code,
        node=node,
        params={"method": "find"},
        file_path=path,
        rule_name=rule,
        severity=severity,
        message=f"{code} message",
    )


@pytest.fixture
def findings():
    return [
        _finding("src/b.ts", 3, 4),
        _finding("src/a.ts", 10, 0, code="DefaultParameter", severity=Severity.WARN, rule="no-default-param"),
        _finding("src/a.ts", 2, 8),
    ]


class TestFinding:
    """Findingのテスト。"""

    def test_location_is_one_based_column(self):
        """列番号は1始まりで表示する。"""
        finding = _finding("src/a.ts", 2, 8)
        assert finding.location.line == 2
        assert finding.location.column == 9

    def test_location_without_span(self):
        """範囲情報がないノードは行0。"""
        finding = Finding(rule_code="X", node=SyntaxNode(type="Program"), file_path="a.ts")
        assert finding.location.line == 0
        assert finding.location.column is None

    def test_to_dict(self):
        """JSON出力用の辞書。"""
        data = _finding("src/a.ts", 2, 8).to_dict()
        assert data["rule"] == "no-n-plus-one-query"
        assert data["code"] == "LoopDataAccess"
        assert data["severity"] == "error"
        assert (data["line"], data["column"]) == (2, 9)
        assert data["params"] == {"method": "find"}


class TestReportWriter:
    """ReportWriterのテスト。"""

    def test_sorted_by_location(self, findings):
        """パス・行・列の順に並べる。"""
        writer = ReportWriter(findings)
        assert [(f.location.file_path, f.location.line) for f in writer.findings] == [
            (str(Path("src/a.ts")), 2),
            (str(Path("src/a.ts")), 10),
            (str(Path("src/b.ts")), 3),
        ]

    def test_render_text(self, findings):
        """ファイルごとにまとめたテキスト。"""
        text = ReportWriter(findings, failed_files=["src/c.ts"]).render_text()
        lines = text.splitlines()

        assert lines[0] == str(Path("src/a.ts"))
        assert lines[1].strip().startswith("2:9")
        assert "no-n-plus-one-query/LoopDataAccess" in lines[1]
        assert "src/c.ts: failed to analyze" in text
        assert lines[-1] == "3 problems (2 errors, 1 warnings, 0 info), 1 files failed"

    def test_render_text_empty(self):
        """指摘がない場合はサマリーのみ。"""
        assert ReportWriter([]).render_text() == "0 problems (0 errors, 0 warnings, 0 info)\n"

    def test_render_json(self, findings):
        """JSON形式の出力。"""
        document = json.loads(ReportWriter(findings).render_json())
        assert len(document["findings"]) == 3
        assert document["findings"][0]["line"] == 2
        assert document["summary"] == {"error": 2, "warn": 1, "info": 0}
        assert document["failed_files"] == []

    def test_write(self, findings):
        """ファイルに書き込む。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out" / "report.json"
            ReportWriter(findings).write(str(path), "json")
            assert json.loads(path.read_text(encoding="utf-8"))["summary"]["error"] == 2

    def test_write_unknown_format(self, findings):
        """未対応の形式はエラー。"""
        with pytest.raises(ValueError):
            ReportWriter(findings).write("report.xml", "xml")


class TestExcelWriter:
    """ExcelWriterのテスト。"""

    def test_write_findings(self, findings):
        """指摘シートとサマリーシートを書き込む。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "report.xlsx"
            ExcelWriter(str(path)).write_findings(findings, failed_files=["src/c.ts"])

            wb = load_workbook(path)
            assert wb.sheetnames == ["Findings", "Summary"]

            ws = wb["Findings"]
            assert [c.value for c in ws[1]] == ExcelWriter.FINDING_HEADERS
            assert ws.max_row == 4
            assert ws.cell(row=2, column=2).value == 2
            assert ws.cell(row=2, column=4).value == "error"
            assert ws.cell(row=2, column=4).fill.start_color.rgb.endswith("FFC7CE")

            summary = wb["Summary"]
            assert summary.cell(row=5, column=2).value == "LoopDataAccess"
            assert summary.cell(row=5, column=3).value == 2
            assert summary.cell(row=7, column=1).value == "合計"
            assert summary.cell(row=7, column=3).value == 3
            assert summary.cell(row=10, column=1).value == "src/c.ts"

    def test_write_empty(self):
        """指摘がなくてもワークブックを作成する。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "empty.xlsx"
            ExcelWriter(str(path)).write_findings([])

            wb = load_workbook(path)
            assert wb["Findings"].max_row == 1
            assert wb["Summary"].cell(row=5, column=1).value == "合計"
