"""I/O 경계 DTO 기반 클래스

외부 API 응답은 필드가 자주 늘어나므로 알 수 없는 필드는 무시합니다.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# 외부 응답용 ConfigDict
EXTERNAL_CONFIG = ConfigDict(
    extra="ignore",  # 알 수 없는 필드 무시
    str_strip_whitespace=True,
    frozen=True,
    populate_by_name=True,
)


class BaseExternalDTO(BaseModel):
    """외부 API 응답 공통 베이스 (불변, 추가 필드 무시)"""

    model_config = EXTERNAL_CONFIG
