from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ..model import ClassOffering, SchedulePreferences, SubScores


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: ClassOffering
    start_time: datetime
    scores: SubScores
    compatibility_score: float


class MakeUpScorer(ABC):
    """Strategy Pattern: rate how well a candidate class replaces the missed one."""

    @abstractmethod
    def score(
        self,
        *,
        candidate: ClassOffering,
        original: ClassOffering,
        preferences: SchedulePreferences,
        start_time: datetime,
    ) -> ScoredCandidate:
        raise NotImplementedError
