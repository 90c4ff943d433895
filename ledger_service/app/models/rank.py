"""Kabayan 랭크 도메인 모델.

잔액(balance) 구간으로 랭크를 정하고, 다음 랭크까지의 진행률을 계산한다.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RankInfo:
    title: str
    color: str
    min: int
    max: int | None = None  # None = 상한 없음 (최고 랭크)

    def contains(self, points: int) -> bool:
        return points >= self.min and (self.max is None or points < self.max)


@dataclass(frozen=True, slots=True)
class RankProgress:
    current: RankInfo
    next: RankInfo | None
    progress: float  # 0~100
    points_to_next: int


RANKS: tuple[RankInfo, ...] = (
    RankInfo("Bagong Salta", "#64748B", 0, 100),
    RankInfo("Bronze Kabayan", "#D97706", 100, 300),
    RankInfo("Silver Kabayan", "#475569", 300, 800),
    RankInfo("Gold Kabayan", "#CA8A04", 800, 2000),
    RankInfo("Diamond OFW", "#0284C7", 2000, 5000),
    RankInfo("Legendary Kabayan", "#DC2626", 5000),
)


def get_rank(points: int) -> RankProgress:
    """잔액에 해당하는 랭크와 다음 랭크까지의 진행률을 반환한다."""

    current = RANKS[0]
    nxt: RankInfo | None = None
    for index, rank in enumerate(RANKS):
        if rank.contains(points):
            current = rank
            nxt = RANKS[index + 1] if index + 1 < len(RANKS) else None
            break

    if nxt is None:
        return RankProgress(current=current, next=None, progress=100.0, points_to_next=0)

    span = nxt.min - current.min
    within = min(max(points - current.min, 0), span)
    progress = 0.0 if span == 0 else within / span * 100
    return RankProgress(
        current=current,
        next=nxt,
        progress=progress,
        points_to_next=max(nxt.min - points, 0),
    )
