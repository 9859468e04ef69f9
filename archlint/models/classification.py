"""呼び出し分類結果モデル。"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClassificationResult:
    """呼び出しノードのデータアクセス分類結果。

    呼び出しノードごとに都度計算し、キャッシュや変更はしない。
    """
    is_data_access: bool
    method_name: Optional[str] = None

    @classmethod
    def data_access(cls, method_name: str) -> "ClassificationResult":
        """データアクセスとしての分類結果を生成する。

        Args:
            method_name: 呼び出されたメンバー名

        Returns:
            ClassificationResultインスタンス
        """
        return cls(is_data_access=True, method_name=method_name)

    def __bool__(self) -> bool:
        return self.is_data_access

    def __str__(self) -> str:
        if not self.is_data_access:
            return "<not data access>"
        return f"<data access: {self.method_name}>"


NO_CLASSIFICATION = ClassificationResult(is_data_access=False)
