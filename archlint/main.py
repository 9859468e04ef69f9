"""アーキテクチャ規約リンターのメインエントリーポイント。"""

import argparse
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass
import logging

from .config import Config, ConfigError
from .engine import FileResult, LintEngine
from .io.excel_writer import ExcelWriter
from .io.report_writer import JSON_FORMAT, TEXT_FORMAT, ReportWriter
from .models.finding import Finding, Severity
from .rules import ALL_RULES
from .utils.logger import setup_logging, ProgressLogger

logger = logging.getLogger(__name__)

EXCEL_FORMAT = "excel"

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2


@dataclass
class ProcessingStats:
    """処理統計情報。"""
    total: int = 0
    analyzed: int = 0
    findings: int = 0
    errors: int = 0
    cancelled: int = 0


class ArchitectureLinter:
    """複数ファイルを並列に解析するメインクラス。"""

    def __init__(self, config: Config, engine: Optional[LintEngine] = None):
        """リンターを初期化する。

        Args:
            config: アプリケーション設定
            engine: 解析エンジン（省略時は設定から生成）
        """
        self.config = config
        self.engine = engine or LintEngine(config)
        self.stats = ProcessingStats()
        self.cancel_event = threading.Event()
        self.results: List[FileResult] = []

        logger.info(f"{len(self.engine.rules)} rules enabled: {', '.join(r.name for r in self.engine.rules)}")

    def process(self, paths: List[str]) -> List[FileResult]:
        """指定されたパス配下のソースファイルを解析する。

        ファイルごとの失敗は結果に記録し、他のファイルの解析は続行する。

        Args:
            paths: ファイルまたはディレクトリのパス

        Returns:
            ファイルパス順のFileResultのリスト
        """
        source_files = self.config.get_source_files(paths)
        self.stats = ProcessingStats(total=len(source_files))
        self.results = []

        logger.info(f"Processing started: {len(source_files)} files")
        if not source_files:
            logger.warning("No source files found")
            return []

        progress = ProgressLogger(len(source_files), logger)
        workers = max(1, min(self.config.workers, len(source_files)))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="archlint") as executor:
            futures = {
                executor.submit(self.engine.lint_file, path, self.cancel_event): path
                for path in source_files
            }
            try:
                for future in as_completed(futures):
                    result = future.result()
                    self._record(result)
                    progress.update(futures[future], failed=result.error is not None)
            except KeyboardInterrupt:
                logger.warning("Interrupted; cancelling remaining files")
                self.cancel()
                for future in futures:
                    future.cancel()
                raise

        self.results.sort(key=lambda r: r.file_path)
        progress.complete("Analysis complete")
        self._log_statistics()
        return list(self.results)

    def cancel(self) -> None:
        """実行中の走査をノード境界で中断させる。"""
        self.cancel_event.set()

    def _record(self, result: FileResult) -> None:
        self.results.append(result)
        if result.cancelled:
            self.stats.cancelled += 1
        elif result.error is not None:
            self.stats.errors += 1
        else:
            self.stats.analyzed += 1
            self.stats.findings += len(result.findings)

    @property
    def findings(self) -> List[Finding]:
        return [f for result in self.results for f in result.findings]

    @property
    def failed_files(self) -> List[str]:
        return [r.file_path for r in self.results if r.error is not None]

    @property
    def has_errors(self) -> bool:
        """ERROR重大度の指摘または解析失敗があるかを確認する。"""
        if self.failed_files:
            return True
        return any(f.severity == Severity.ERROR for f in self.findings)

    def write_report(self, fmt: str, output: Optional[str] = None) -> None:
        """解析結果を出力する。

        Args:
            fmt: "text", "json", "excel" のいずれか
            output: 出力先パス（text/jsonで省略時は標準出力）
        """
        if fmt == EXCEL_FORMAT:
            ExcelWriter(output).write_findings(self.findings, self.failed_files)
            return

        writer = ReportWriter(self.findings, self.failed_files)
        if output:
            writer.write(output, fmt)
        elif fmt == JSON_FORMAT:
            sys.stdout.write(writer.render_json() + "\n")
        else:
            sys.stdout.write(writer.render_text())

    def _log_statistics(self) -> None:
        """処理統計をログ出力する。"""
        logger.info("=" * 50)
        logger.info("Processing Statistics:")
        logger.info(f"  Total files: {self.stats.total}")
        logger.info(f"  Analyzed: {self.stats.analyzed}")
        logger.info(f"  Findings: {self.stats.findings}")
        logger.info(f"  Errors: {self.stats.errors}")
        logger.info(f"  Cancelled: {self.stats.cancelled}")
        logger.info("=" * 50)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archlint",
        description="JavaScript/TypeScriptのアーキテクチャ規約リンター"
    )
    parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="解析するファイルまたはディレクトリ（省略時はカレントディレクトリ）"
    )
    parser.add_argument(
        "-c", "--config",
        help="設定ファイルパス（省略時はデフォルト設定）"
    )
    parser.add_argument(
        "-f", "--format",
        choices=[TEXT_FORMAT, JSON_FORMAT, EXCEL_FORMAT],
        default=TEXT_FORMAT,
        help="出力形式"
    )
    parser.add_argument(
        "-o", "--output",
        help="出力ファイル（excel形式では必須）"
    )
    parser.add_argument(
        "-j", "--workers",
        type=int,
        help="並列に処理するファイル数"
    )
    parser.add_argument(
        "--rule",
        action="append",
        metavar="NAME",
        help="有効にするルール（複数指定可、省略時は全ルール）"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="詳細ログを有効にする"
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="利用可能なルールを一覧表示する"
    )
    parser.add_argument(
        "--init-config",
        metavar="PATH",
        help="デフォルト設定をYAMLファイルに書き出す"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """メインエントリーポイント。

    Args:
        argv: コマンドライン引数（省略時はsys.argv）

    Returns:
        終了コード（0: 問題なし、1: エラー指摘または解析失敗、2: 使用法・設定エラー）
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.list_rules:
        _print_rules()
        return EXIT_OK

    # --init-configモードを処理
    if args.init_config:
        return _init_config(args.init_config, args.verbose)

    if args.format == EXCEL_FORMAT and not args.output:
        parser.error("excel形式では--outputが必要です")

    # 設定を読み込み
    if args.config:
        if not Path(args.config).exists():
            print(f"Error: 設定ファイルが見つかりません: {args.config}", file=sys.stderr)
            return EXIT_USAGE
        try:
            config = Config.from_yaml(args.config)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE
    else:
        config = Config()

    # コマンドライン引数で上書き
    if args.verbose:
        config.log_level = "DEBUG"
    if args.workers is not None:
        config.workers = args.workers
    if args.rule:
        config.enabled_rules = list(args.rule)

    # ロギングをセットアップ
    setup_logging(level=config.log_level, log_file=config.log_file)

    # 設定を検証
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return EXIT_USAGE

    try:
        linter = ArchitectureLinter(config)
        linter.process(args.paths)
        linter.write_report(args.format, args.output)
    except KeyboardInterrupt:
        logger.warning("Cancelled by user")
        return EXIT_FINDINGS
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_FINDINGS

    return EXIT_FINDINGS if linter.has_errors else EXIT_OK


def _print_rules() -> None:
    for rule_cls in ALL_RULES:
        print(f"{rule_cls.name:<30} {rule_cls.default_severity.value:<5}  {rule_cls.description}")
        for code in rule_cls.messages:
            print(f"    {code}")


def _init_config(output_config: str, verbose: bool) -> int:
    """デフォルト設定ファイルを生成する。

    Args:
        output_config: 出力設定ファイルパス
        verbose: 詳細ログを有効にするかどうか

    Returns:
        終了コード
    """
    setup_logging(level="DEBUG" if verbose else "INFO")

    if Path(output_config).exists():
        print(f"Error: ファイルが既に存在します: {output_config}", file=sys.stderr)
        return EXIT_USAGE

    try:
        Config().save_yaml(output_config)
    except OSError as e:
        print(f"Error: 設定ファイルを書き込めません: {e}", file=sys.stderr)
        return EXIT_USAGE

    print(f"設定ファイルを生成しました: {output_config}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
