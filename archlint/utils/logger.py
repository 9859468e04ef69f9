"""ロギング設定モジュール。"""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """ルートロガーにコンソールとファイルのハンドラーを設定する。

    標準出力はレポートに使うため、コンソールログは標準エラーへ出す。
    未知のレベル名はINFOとして扱う。

    Args:
        level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        log_file: ログファイルへのパス（省略可）
        format_string: カスタムフォーマット文字列（省略可）
        stream: コンソールハンドラーの出力先（省略時は標準エラー）

    Returns:
        ルートロガー
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(
        _configure(logging.StreamHandler(stream or sys.stderr), log_level, formatter)
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(
            _configure(logging.FileHandler(log_path, encoding="utf-8"), log_level, formatter)
        )

    return root_logger


class ProgressLogger:
    """ファイル単位の解析進捗を記録する。

    一定件数ごとと最後の1件でINFO、それ以外はDEBUGで出力する。
    """

    def __init__(
        self,
        total: int,
        logger: Optional[logging.Logger] = None,
        log_interval: int = 50
    ):
        """
        Args:
            total: ファイルの総数
            logger: 使用するロガー
            log_interval: INFOで出力する間隔
        """
        self.total = total
        self.current = 0
        self.failed = 0
        self.logger = logger or logging.getLogger(__name__)
        self.log_interval = max(1, log_interval)

    def update(self, file_path: Optional[str] = None, failed: bool = False) -> None:
        """1ファイル分の進捗を記録する。

        Args:
            file_path: 処理したファイル
            failed: 解析に失敗した場合True
        """
        self.current += 1
        if failed:
            self.failed += 1

        if self.current % self.log_interval == 0 or self.current == self.total:
            percent = self.current / self.total * 100 if self.total else 100.0
            self.logger.info(f"Progress: {self.current}/{self.total} ({percent:.1f}%)")
        elif file_path:
            status = "failed" if failed else "analyzed"
            self.logger.debug(f"{status}: {file_path}")

    def complete(self, message: str = "Complete") -> None:
        """進捗を完了としてマークする。"""
        summary = f"{message}: {self.current}/{self.total} files processed"
        if self.failed:
            summary += f", {self.failed} failed"
        self.logger.info(summary)
