"""ペイロード検証ユーティリティ

リポジトリの各変更操作が受け取るペイロードを、専用のPydanticモデルで検証する

- ペイロード型（TypedDict）とPydanticモデルの対応は matches() で定義時に検査する
- フィールド名・必須/任意・型注釈のいずれかがずれていれば TypeError（インポート時に失敗する）
- parse() は入力全体を検証し、呼び出し側が指定したキーだけを返す
"""

import types
import typing
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar, cast, get_args, get_origin, get_type_hints
from uuid import UUID

import pydantic
from pydantic import BaseModel

from todoapp.core.constants import ErrorMessages
from todoapp.core.exceptions import ValidationError

P = TypeVar("P")


# =============================================================================
# エラー整形
# =============================================================================


def _clean_message(message: str) -> str:
    # field_validator内のValueErrorは "Value error, ..." という接頭辞が付く
    prefix = "Value error, "
    return message[len(prefix) :] if message.startswith(prefix) else message


def format_validation_errors(exc: pydantic.ValidationError) -> list[dict[str, str]]:
    """PydanticのValidationErrorをフィールドごとのエラー一覧に変換

    Returns:
        [{"field": "title", "message": "..."}] 形式のリスト
    """
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.append({"field": field, "message": _clean_message(error["msg"])})
    return errors


def to_domain_validation_error(exc: pydantic.ValidationError) -> ValidationError:
    """PydanticのValidationErrorをドメインのValidationErrorに変換"""
    errors = format_validation_errors(exc)
    message = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return ValidationError(message or ErrorMessages.VALIDATION_ERROR, details={"errors": errors})


# =============================================================================
# 型の整合性チェック
# =============================================================================


def _normalize(tp: Any) -> Any:
    """Optional[X] と X | None のような表記揺れを吸収して比較可能な形にする"""
    origin = get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        return ("union", frozenset(_normalize(arg) for arg in get_args(tp)))
    if origin is not None:
        return (origin, tuple(_normalize(arg) for arg in get_args(tp)))
    return tp


def _check_alignment(model: type[BaseModel], target: type) -> None:
    target_hints = get_type_hints(target)
    required_keys: frozenset[str] = getattr(target, "__required_keys__", frozenset(target_hints))
    model_fields = model.model_fields

    missing = set(target_hints) - set(model_fields)
    extra = set(model_fields) - set(target_hints)
    if missing or extra:
        raise TypeError(
            f"{model.__name__} と {target.__name__} のフィールドが一致しません: "
            f"不足={sorted(missing)}, 余分={sorted(extra)}"
        )

    for name, field_info in model_fields.items():
        if field_info.is_required() != (name in required_keys):
            raise TypeError(f"{model.__name__}.{name} の必須/任意が {target.__name__} と一致しません")
        if _normalize(field_info.annotation) != _normalize(target_hints[name]):
            raise TypeError(
                f"{model.__name__}.{name} の型 {field_info.annotation} が "
                f"{target.__name__} の {target_hints[name]} と一致しません"
            )


# =============================================================================
# スキーマ
# =============================================================================


class PayloadSchema(Generic[P]):
    """ペイロード型 P に対応付けられた検証スキーマ"""

    def __init__(self, model: type[BaseModel], target: type[P]) -> None:
        _check_alignment(model, target)
        self.model = model
        self.target = target

    @property
    def name(self) -> str:
        return self.model.__name__

    def parse(self, data: Mapping[str, Any] | BaseModel) -> P:
        """入力を検証してペイロードを返す

        全フィールドを検証し、1つでも違反があれば何も返さずに ValidationError を送出する

        Raises:
            ValidationError: 検証に失敗した場合（details["errors"] に違反フィールド一覧）
        """
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            instance = self.model.model_validate(dict(data))
        except pydantic.ValidationError as e:
            raise to_domain_validation_error(e) from e
        return cast(P, instance.model_dump(exclude_unset=True))

    def __repr__(self) -> str:
        return f"<PayloadSchema(model={self.model.__name__}, target={self.target.__name__})>"


def matches(target: type[P]) -> Callable[[type[BaseModel]], PayloadSchema[P]]:
    """Pydanticモデルをペイロード型に対応付ける

    Usage:
        TodoTitleUpdateSchema = matches(TodoTitleUpdate)(TodoTitleUpdateModel)
    """

    def bind(model: type[BaseModel]) -> PayloadSchema[P]:
        return PayloadSchema(model, target)

    return bind


# =============================================================================
# ID変換
# =============================================================================


def safe_uuid_convert(value: UUID | str, field: str = "id") -> UUID:
    """文字列IDをUUIDに変換

    Raises:
        ValidationError: UUIDとして解釈できない場合
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, TypeError) as e:
        raise ValidationError(
            ErrorMessages.INVALID_ID_FORMAT,
            details={"errors": [{"field": field, "message": ErrorMessages.INVALID_ID_FORMAT}]},
        ) from e
