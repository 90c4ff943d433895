from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = "config.yaml"
LEDGER_SERVICE_PORT_ENV = "LEDGER_SERVICE_PORT"


@dataclass(slots=True)
class CooldownRewardConfig:
    points: int
    cooldown: timedelta


@dataclass(slots=True)
class ContentRewardConfig:
    news_read: int = 10
    news_share: int = 5
    video_watched: int = 15
    video_share: int = 5

    def amount_for(self, kind: str) -> int:
        return int(getattr(self, kind))


@dataclass(slots=True)
class LedgerConfig:
    """ledger-service 보상 정책 설정.

    - daily_checkin / weekly_quiz: 지급량과 cooldown (직전 성공 시각 기준 경과 시간)
    - content_rewards: 뉴스/영상 액션별 기본 지급량
    """

    daily_checkin: CooldownRewardConfig = field(
        default_factory=lambda: CooldownRewardConfig(5, timedelta(hours=24))
    )
    weekly_quiz: CooldownRewardConfig = field(
        default_factory=lambda: CooldownRewardConfig(15, timedelta(days=7))
    )
    content_rewards: ContentRewardConfig = field(default_factory=ContentRewardConfig)
    leaderboard_size: int = 10


def _find_config_path() -> Path | None:
    """현재 작업 디렉토리 기준으로 상위로 올라가며 config.yaml 을 찾는다."""

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def _positive_int(
    section: dict[str, Any], prefix: str, key: str, default: int, path: Path
) -> int:
    """정수만 허용한다. bool/float/문자열은 변환하지 않고 설정 오류로 본다."""
    name = f"{prefix}.{key}"
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuntimeError(f"invalid {name} in {path}: expected integer, got {value!r}")
    if value <= 0:
        raise RuntimeError(f"{name} must be positive in {path}: {value!r}")
    return value


def _section(data: dict[str, Any], prefix: str, key: str, path: Path) -> dict[str, Any]:
    # 키가 없거나 비어 있으면 기본값, 값이 있는데 mapping 이 아니면 오류
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        name = f"{prefix}.{key}" if prefix else key
        raise RuntimeError(f"invalid {name} in {path}: expected mapping, got {value!r}")
    return value


def load_ledger_config(path: Path | None = None) -> LedgerConfig:
    """config.yaml 의 ledger 섹션을 읽는다. 파일/키가 없으면 기본값을 사용한다."""

    path = path or _find_config_path()
    if path is None:
        logger.info("%s not found, using default ledger config", DEFAULT_CONFIG_FILE_NAME)
        return LedgerConfig()

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"invalid {path}: top level must be a mapping")

    ledger = _section(data, "", "ledger", path)
    daily = _section(ledger, "ledger", "daily_checkin", path)
    weekly = _section(ledger, "ledger", "weekly_quiz", path)
    content = _section(ledger, "ledger", "content_rewards", path)
    defaults = ContentRewardConfig()

    def daily_int(key: str, default: int) -> int:
        return _positive_int(daily, "ledger.daily_checkin", key, default, path)

    def weekly_int(key: str, default: int) -> int:
        return _positive_int(weekly, "ledger.weekly_quiz", key, default, path)

    def content_int(key: str) -> int:
        return _positive_int(
            content, "ledger.content_rewards", key, getattr(defaults, key), path
        )

    return LedgerConfig(
        daily_checkin=CooldownRewardConfig(
            points=daily_int("points", 5),
            cooldown=timedelta(hours=daily_int("cooldown_hours", 24)),
        ),
        weekly_quiz=CooldownRewardConfig(
            points=weekly_int("points", 15),
            cooldown=timedelta(days=weekly_int("cooldown_days", 7)),
        ),
        content_rewards=ContentRewardConfig(
            news_read=content_int("news_read"),
            news_share=content_int("news_share"),
            video_watched=content_int("video_watched"),
            video_share=content_int("video_share"),
        ),
        leaderboard_size=_positive_int(ledger, "ledger", "leaderboard_size", 10, path),
    )


_config: LedgerConfig | None = None


def get_ledger_config() -> LedgerConfig:
    """프로세스 전역 LedgerConfig (FastAPI DI 용)."""

    global _config
    if _config is None:
        _config = load_ledger_config()
    return _config


def get_port() -> int:
    return int(os.getenv(LEDGER_SERVICE_PORT_ENV, "8003"))
