from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """업스트림이 돌려준 값을 Decimal로 정규화.

    - Decimal -> 그대로
    - int/str -> Decimal(value)
    - float -> Decimal(str(value)) (이진 표현 오차를 그대로 옮기지 않음)
    - 그 외, bool, NaN/Infinity -> ValueError
    """
    if isinstance(value, bool):
        raise ValueError(f"not a rate: {value!r}")
    if isinstance(value, Decimal):
        rate = value
    elif isinstance(value, float):
        rate = Decimal(str(value))
    elif isinstance(value, (int, str)):
        try:
            rate = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"not a rate: {value!r}") from e
    else:
        raise ValueError(f"not a rate: {value!r}")

    if not rate.is_finite():
        raise ValueError(f"rate must be finite: {value!r}")
    return rate


def encode_rate(rate: Decimal) -> str:
    """Decimal -> 정규 텍스트. str(Decimal)은 지수/자릿수까지 보존된다."""
    if not rate.is_finite():
        raise ValueError(f"rate must be finite: {rate!r}")
    return str(rate)


def decode_rate(raw: str | bytes) -> Decimal:
    """저장된 텍스트 -> Decimal (encode_rate의 정확한 역함수)."""
    text = raw.decode() if isinstance(raw, (bytes, bytearray)) else raw
    try:
        rate = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"corrupted rate value: {text!r}") from e
    if not rate.is_finite():
        raise ValueError(f"corrupted rate value: {text!r}")
    return rate
