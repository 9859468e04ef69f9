"""構文木の読み込みとレポート出力モジュール。"""

from .estree_loader import EstreeFormatError, load_estree, load_estree_file
from .excel_writer import ExcelWriter
from .report_writer import ReportWriter

__all__ = [
    "EstreeFormatError",
    "ExcelWriter",
    "ReportWriter",
    "load_estree",
    "load_estree_file",
]
