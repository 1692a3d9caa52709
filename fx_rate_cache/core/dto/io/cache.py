from __future__ import annotations

import orjson
from pydantic import BaseModel, field_validator


class FetchLockMarker(BaseModel):
    """fetch 진행 중 마커 값 (Redis에 JSON bytes로 저장).

    - owner: 마커를 획득한 호출의 토큰. 해제 시 소유자 비교에 사용.
    - acquired_at: 획득 시각 (epoch seconds), 진단 로그용.
    """

    owner: str
    acquired_at: float

    @field_validator("owner")
    @classmethod
    def _validate_owner(cls, v: str) -> str:
        if not v:
            raise ValueError("owner token must be non-empty")
        return v

    def to_bytes(self) -> bytes:
        return orjson.dumps(self.model_dump())

    @classmethod
    def from_raw(cls, raw: str | bytes) -> FetchLockMarker:
        return cls.model_validate(orjson.loads(raw))
