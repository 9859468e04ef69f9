"""1ファイル分の走査とルール適用を行うエンジン。"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
import logging
import threading

from .analyzer.call_classifier import CallClassifier
from .analyzer.module_resolver import ModuleResolver
from .analyzer.scope_tracker import ScopeInvariantError, ScopeTracker
from .analyzer.source_parser import SourceParseError, SourceParser
from .analyzer.traversal import TraversalScheduler
from .config import Config, ESTREE_SUFFIX
from .io.estree_loader import EstreeFormatError, load_estree_file
from .models.finding import Finding
from .models.syntax_node import SyntaxNode, SyntaxTree
from .rules import Rule, RuleContext, build_rules

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """1ファイル分の解析結果。"""
    file_path: str
    findings: List[Finding] = field(default_factory=list)
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


class FindingCollector:
    """1ファイル分の指摘を収集する追記専用のシンク。

    同じノード・同じ指摘コードの組は1件だけ保持する。
    """

    def __init__(self, file_path: str):
        """コレクターを初期化する。

        Args:
            file_path: 解析対象のファイルパス
        """
        self.file_path = file_path
        self._findings: List[Finding] = []
        self._seen: Set[Tuple[int, str]] = set()

    def sink_for(self, rule: Rule):
        """ルール用の報告関数を生成する。

        Args:
            rule: 指摘を報告するルール

        Returns:
            (rule_code, node, params) を受け取る関数
        """
        def report(rule_code: str, node: SyntaxNode, params: Dict[str, str]) -> None:
            self.add(rule, rule_code, node, params)

        return report

    def add(self, rule: Rule, rule_code: str, node: SyntaxNode, params: Dict[str, str]) -> bool:
        """指摘を追加する。

        Args:
            rule: 指摘元のルール
            rule_code: 指摘コード
            node: 違反箇所のノード
            params: メッセージ用パラメーター

        Returns:
            追加した場合True、重複で捨てた場合False
        """
        # ノードは走査中ツリーに保持されているためidで識別できる
        key = (id(node), rule_code)
        if key in self._seen:
            return False
        self._seen.add(key)

        self._findings.append(Finding(
            rule_code=rule_code,
            node=node,
            params=params,
            file_path=self.file_path,
            rule_name=rule.name,
            severity=rule.severity,
            message=rule.format_message(rule_code, params),
        ))
        return True

    @property
    def findings(self) -> List[Finding]:
        return list(self._findings)

    def __len__(self) -> int:
        return len(self._findings)


class LintEngine:
    """構文木を1回走査してルールを適用する。

    ファイルごとにスケジューラー・スコープ追跡器・コレクターを新しく
    生成し、ファイル間で可変状態を共有しない。
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        rules: Optional[List[Rule]] = None,
        parser: Optional[SourceParser] = None
    ):
        """エンジンを初期化する。

        Args:
            config: アプリケーション設定（省略時はデフォルト）
            rules: 適用するルール（省略時は設定から生成）
            parser: ソースパーサー（省略時は新規作成）
        """
        self.config = config or Config()
        self.rules = rules if rules is not None else build_rules(
            enabled=self.config.enabled_rules,
            disabled=self.config.disabled_rules,
            severity_overrides=self.config.severity_overrides,
        )
        self.parser = parser or SourceParser()

        # 分類器とリゾルバーは状態を持たないため共有してよい
        self.classifier = CallClassifier(
            data_access_tokens=self.config.data_access_tokens,
            accessor_tokens=self.config.accessor_tokens,
            data_access_verbs=self.config.data_access_verbs,
        )
        self.resolver = ModuleResolver(
            module_marker=self.config.module_marker,
            intra_module_dirs=self.config.intra_module_dirs,
            relative_depth_threshold=self.config.relative_depth_threshold,
            orchestration_marker=self.config.orchestration_marker,
        )

    def new_tracker(self) -> ScopeTracker:
        return ScopeTracker(
            iteration_methods=self.config.iteration_methods,
            aggregate_combinators=self.config.aggregate_combinators,
        )

    def lint_file(
        self,
        file_path: str,
        cancel_event: Optional[threading.Event] = None
    ) -> FileResult:
        """ファイルを読み込んで解析する。

        Args:
            file_path: ソースファイルまたはESTree JSONのパス
            cancel_event: セットされると走査を中断する

        Returns:
            FileResult（パース失敗時はerrorを設定）
        """
        try:
            if file_path.endswith(ESTREE_SUFFIX):
                tree = load_estree_file(file_path)
            else:
                tree = self.parser.parse_file(file_path)
        except (SourceParseError, EstreeFormatError) as e:
            logger.error(f"Failed to parse {file_path}: {e}")
            return FileResult(file_path=file_path, error=str(e))
        except Exception as e:
            # 想定外の入力でも他のファイルの解析は続ける
            logger.exception(f"Unexpected error while loading {file_path}: {e}")
            return FileResult(file_path=file_path, error=f"{type(e).__name__}: {e}")

        return self.lint_tree(tree, cancel_event)

    def lint_source(self, source_code: str, filename: str) -> FileResult:
        """ソース文字列を解析する。

        Args:
            source_code: ソースコード
            filename: ルール判定に使うファイル名

        Returns:
            FileResult
        """
        try:
            tree = self.parser.parse_string(source_code, filename)
        except SourceParseError as e:
            logger.error(f"Failed to parse {filename}: {e}")
            return FileResult(file_path=filename, error=str(e))
        return self.lint_tree(tree)

    def lint_tree(
        self,
        tree: SyntaxTree,
        cancel_event: Optional[threading.Event] = None
    ) -> FileResult:
        """構文木を走査してルールを適用する。

        ハンドラーで発生した例外はこのファイルの失敗として記録し、
        呼び出し元へは伝播させない。

        Args:
            tree: 解析する構文木
            cancel_event: セットされると走査を中断する

        Returns:
            FileResult
        """
        file_path = tree.file_path
        scheduler = TraversalScheduler()
        tracker = self.new_tracker()
        collector = FindingCollector(file_path)

        # スコープ追跡はルールより先に登録する
        tracker.attach(scheduler)

        try:
            for rule in self.rules:
                if not rule.applies_to(file_path):
                    continue
                context = RuleContext(
                    file_path=file_path,
                    tracker=tracker,
                    classifier=self.classifier,
                    resolver=self.resolver,
                    sink=collector.sink_for(rule),
                )
                scheduler.register(rule.create(context))

            completed = scheduler.walk(tree.root, cancel_event)
            if completed and not tracker.is_balanced:
                raise ScopeInvariantError(
                    f"Scope stacks not empty after traversal: {tracker.snapshot()}"
                )
        except Exception as e:
            logger.exception(f"Rule evaluation failed for {file_path}: {e}")
            return FileResult(file_path=file_path, error=f"{type(e).__name__}: {e}")

        if not completed:
            # 中断したファイルの状態は破棄する
            logger.info(f"Traversal of {file_path} cancelled")
            return FileResult(file_path=file_path, cancelled=True)

        findings = collector.findings
        logger.debug(f"{file_path}: {len(findings)} findings")
        return FileResult(file_path=file_path, findings=findings)
