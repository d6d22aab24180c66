"""ベースDTOクラス

すべてのDTOの基底クラスを提供
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class BaseDTO:
    """ベースDTOクラス

    - dataclass(frozen=True): イミュータブルなデータクラス
    - リポジトリ境界を越えるのはDTOのみ（ORMインスタンスは外に出さない）
    """

    id: UUID
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        """辞書形式に変換（デバッグ・ログ出力用）"""
        return asdict(self)
