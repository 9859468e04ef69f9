"""外部パーサーが出力したESTree JSONの読み込み。"""

from typing import Any, Dict, List, Optional
from pathlib import Path
import json
import logging

from ..models.syntax_node import SourceSpan, SyntaxNode, SyntaxTree

logger = logging.getLogger(__name__)

# 子ノードを持たないキー
_SKIPPED_KEYS = frozenset({"type", "loc", "range", "start", "end", "parent", "comments", "tokens"})

# SyntaxNode.attrsにコピーするスカラー型
_SCALAR_TYPES = (str, int, float, bool)


class EstreeFormatError(Exception):
    """ESTree文書として読み込めない場合のエラー。"""
    pass


def _is_node(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("type"), str)


def _position_value(position: Dict[str, Any], key: str) -> Optional[int]:
    value = position.get(key, 0)
    # boolはintのサブクラスなので除外する
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class _LineIndex:
    """文字オフセットを（行, 列）に変換する。"""

    def __init__(self, source: str):
        self._starts = [0]
        for i, ch in enumerate(source):
            if ch == "\n":
                self._starts.append(i + 1)

    def position(self, offset: int) -> tuple:
        low, high = 0, len(self._starts) - 1
        while low < high:
            mid = (low + high + 1) // 2
            if self._starts[mid] <= offset:
                low = mid
            else:
                high = mid - 1
        return low + 1, offset - self._starts[low]


def _span_of(data: Dict[str, Any], line_index: Optional[_LineIndex]) -> Optional[SourceSpan]:
    """`loc`、またはソースがあれば`start`/`end`オフセットから範囲を作る。

    位置情報が整数でない場合は範囲なしとして扱う。
    """
    loc = data.get("loc")
    if isinstance(loc, dict) and isinstance(loc.get("start"), dict):
        start = loc["start"]
        end = loc.get("end")
        if not isinstance(end, dict):
            end = start
        values = [
            _position_value(start, "line"),
            _position_value(start, "column"),
            _position_value(end, "line"),
            _position_value(end, "column"),
        ]
        if any(v is None for v in values):
            return None
        return SourceSpan(*values)

    if line_index is None:
        return None

    start_offset = data.get("start")
    end_offset = data.get("end")
    if isinstance(data.get("range"), list) and len(data["range"]) == 2:
        start_offset, end_offset = data["range"]
    if not isinstance(start_offset, int) or not isinstance(end_offset, int):
        return None

    start_line, start_column = line_index.position(start_offset)
    end_line, end_column = line_index.position(end_offset)
    return SourceSpan(start_line, start_column, end_line, end_column)


def load_estree(
    document: Dict[str, Any],
    file_path: str,
    source: Optional[str] = None
) -> SyntaxTree:
    """ESTree文書からSyntaxTreeを生成する。

    子ノードの順序は各オブジェクトのキー順に従う（acorn, espree, oxcでは
    ソース順）。変換は反復的に行うため、深い入れ子でも再帰上限に達しない。

    Args:
        document: ESTreeのルートノード（通常はProgram）
        file_path: 構文木が表すソースファイルのパス
        source: 元のソース（オフセットから位置を計算する場合に使用）

    Returns:
        SyntaxTree

    Raises:
        EstreeFormatError: ルートがESTreeノードでない場合
    """
    if not _is_node(document):
        raise EstreeFormatError(f"Root of {file_path} is not an ESTree node")

    line_index = _LineIndex(source) if source is not None else None

    root = SyntaxNode(type=document["type"], span=_span_of(document, line_index))
    # (ESTreeの辞書, 対応するSyntaxNode)
    pending: List[tuple] = [(document, root)]

    while pending:
        data, node = pending.pop()
        for key, value in data.items():
            if key in _SKIPPED_KEYS:
                continue

            if _is_node(value):
                child = SyntaxNode(type=value["type"], span=_span_of(value, line_index))
                node.add_child(key, child)
                pending.append((value, child))
            elif isinstance(value, list) and (not value or any(_is_node(v) for v in value)):
                node.fields[key] = []
                for item in value:
                    if not _is_node(item):
                        # 配列パターンの空要素
                        continue
                    child = SyntaxNode(type=item["type"], span=_span_of(item, line_index))
                    node.add_child(key, child)
                    pending.append((item, child))
            elif isinstance(value, _SCALAR_TYPES):
                node.attrs[key] = value
            elif key == "value" and value is None:
                node.attrs[key] = None

    return SyntaxTree(root=root, file_path=file_path)


def load_estree_file(path: str, source_path: Optional[str] = None) -> SyntaxTree:
    """ESTree JSONファイルを読み込む。

    `foo.ts.estree.json` は `foo.ts` を表すものとし、パスで判定するルールが
    実際のソース名を参照できるように構文木のファイルパスに使う。

    Args:
        path: JSONファイルのパス
        source_path: 構文木が表すソースファイルのパス（省略時は推定）

    Returns:
        SyntaxTree

    Raises:
        EstreeFormatError: 読み込みまたはデコードに失敗した場合
    """
    json_path = Path(path)
    try:
        with open(json_path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        # JSONDecodeErrorとUnicodeDecodeErrorはどちらもValueError
        raise EstreeFormatError(f"Failed to load ESTree JSON {path}: {e}") from e

    # {"program": {...}} や {"ast": {...}} で包むツールがある
    if isinstance(document, dict) and not _is_node(document):
        for wrapper_key in ("program", "ast"):
            if _is_node(document.get(wrapper_key)):
                document = document[wrapper_key]
                break

    if source_path is None:
        name = json_path.name
        suffix = ".estree.json"
        source_path = str(json_path.with_name(name[:-len(suffix)])) if name.endswith(suffix) else str(json_path)

    source = None
    if Path(source_path).is_file() and source_path != str(json_path):
        source = Path(source_path).read_text(encoding="utf-8", errors="replace")

    tree = load_estree(document, source_path, source=source)
    logger.debug(f"Loaded ESTree document for {source_path}")
    return tree
