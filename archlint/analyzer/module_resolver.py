"""import指定子のモジュール境界判定。"""

from typing import Iterable, List, Optional, Set
import re
import logging

logger = logging.getLogger(__name__)

DEFAULT_MODULE_MARKER = "features"

DEFAULT_ORCHESTRATION_MARKER = "flows"

# 3階層以上遡っても同一モジュール内とみなすディレクトリ名
DEFAULT_INTRA_MODULE_DIRS = (
    "command", "query", "utils", "types", "shared", "adapter", "flows",
)

DEFAULT_RELATIVE_DEPTH_THRESHOLD = 3

_SEPARATORS = re.compile(r"[/\\]")


def split_segments(path: str) -> List[str]:
    """パスを区切り文字（/ と \\）で分割する。"""
    return _SEPARATORS.split(path)


class ModuleResolver:
    """ファイルパスとimport指定子からモジュール境界の越境を判定する。

    モジュールグラフは解決せず、パス文字列だけで判定する近似的な
    ヒューリスティックである。深い相対importは閾値以上の場合のみ
    越境の可能性を疑い、再現率より適合率を優先する。
    """

    def __init__(
        self,
        module_marker: str = DEFAULT_MODULE_MARKER,
        intra_module_dirs: Iterable[str] = DEFAULT_INTRA_MODULE_DIRS,
        relative_depth_threshold: int = DEFAULT_RELATIVE_DEPTH_THRESHOLD,
        orchestration_marker: str = DEFAULT_ORCHESTRATION_MARKER
    ):
        """リゾルバーを初期化する。

        Args:
            module_marker: モジュールルートを示すパスセグメント
            intra_module_dirs: 越境とみなさない兄弟ディレクトリ名
            relative_depth_threshold: 越境を疑う親ディレクトリ遡り回数
            orchestration_marker: モジュールを束ねる上位層のセグメント
        """
        self.module_marker = module_marker
        self.intra_module_dirs: Set[str] = set(intra_module_dirs)
        self.relative_depth_threshold = relative_depth_threshold
        self.orchestration_marker = orchestration_marker

    def module_id_of(self, file_path: str) -> Optional[str]:
        """ファイルが属するモジュールIDを取得する。

        最初のマーカーセグメントの次のセグメントをモジュールIDとする。
        ファイルがそのディレクトリの配下にない場合はNone。

        Args:
            file_path: ファイルパス

        Returns:
            モジュールID、モジュール外の場合はNone
        """
        segments = split_segments(file_path)
        index = self._marker_index(segments)
        # マーカー/モジュールID/ファイル の3要素が必要
        if index is None or index + 2 >= len(segments):
            return None
        module_id = segments[index + 1]
        return module_id or None

    def specifier_module_id(self, specifier: str) -> Optional[str]:
        """絶対形式の指定子からモジュールIDを取得する。

        `@/features/order/x`、`features/order`、`../../features/order/x`
        のようにマーカーセグメントを含む指定子が対象。

        Args:
            specifier: import指定子

        Returns:
            モジュールID、マーカーを含まない場合はNone
        """
        segments = split_segments(specifier)
        index = self._marker_index(segments)
        if index is None or index + 1 >= len(segments):
            return None
        return segments[index + 1] or None

    def _marker_index(self, segments: List[str]) -> Optional[int]:
        try:
            return segments.index(self.module_marker)
        except ValueError:
            return None

    def resolve(self, current_file_path: str, import_specifier: str) -> bool:
        """importがモジュール境界を越えるかを判定する。

        Args:
            current_file_path: importを記述しているファイルのパス
            import_specifier: import指定子

        Returns:
            越境する場合True
        """
        if not import_specifier:
            return False

        current_module = self.module_id_of(current_file_path)
        if current_module is None:
            # モジュール外のファイルは対象外
            return False

        imported_module = self.specifier_module_id(import_specifier)
        if imported_module is not None:
            crosses = imported_module != current_module
            if crosses:
                logger.debug(
                    f"{current_file_path}: {import_specifier} -> module {imported_module}"
                )
            return crosses

        if import_specifier.startswith(".."):
            return self._resolve_relative(current_module, import_specifier)

        return False

    def _resolve_relative(self, current_module: str, specifier: str) -> bool:
        """相対指定子の越境を親ディレクトリ遡り回数から推定する。

        Args:
            current_module: 現在のファイルのモジュールID
            specifier: ".." で始まる相対指定子

        Returns:
            越境と推定される場合True
        """
        parts = specifier.split("/")
        up_count = 0
        for part in parts:
            if part != "..":
                break
            up_count += 1

        # 浅い相対importは同一モジュール内とみなす
        if up_count < self.relative_depth_threshold:
            return False

        remaining = parts[up_count:]
        if not remaining or not remaining[0]:
            return False

        target_dir = remaining[0]
        if target_dir in self.intra_module_dirs:
            return False

        return target_dir != current_module

    def is_inside_module_root(self, file_path: str) -> bool:
        """ファイルパスがモジュールルート配下かを確認する。"""
        segments = split_segments(file_path)
        index = self._marker_index(segments)
        return index is not None and index + 1 < len(segments)

    def imports_orchestration_layer(self, current_file_path: str, specifier: str) -> bool:
        """モジュール内から上位の統合層をimportしているかを判定する。

        依存方向は統合層 -> モジュールであるべきため、逆向きを検出する。

        Args:
            current_file_path: importを記述しているファイルのパス
            specifier: import指定子

        Returns:
            統合層をimportしている場合True
        """
        if not specifier or not self.is_inside_module_root(current_file_path):
            return False

        marker = self.orchestration_marker
        return (
            f"/{marker}/" in specifier
            or f"\\{marker}\\" in specifier
            or specifier.startswith(f"{marker}/")
        )
