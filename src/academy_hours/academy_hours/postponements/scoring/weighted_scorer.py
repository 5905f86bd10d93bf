from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ...common.datetime_utils import iso_weekday, parse_hhmm
from ..model import ClassOffering, SchedulePreferences, SubScores
from .base import MakeUpScorer, ScoredCandidate


@dataclass(frozen=True)
class ScoringWeights:
    content: float = 0.30
    schedule: float = 0.25
    teacher: float = 0.20
    class_size: float = 0.10
    location: float = 0.08
    timing: float = 0.05
    availability: float = 0.02

    def combine(self, s: SubScores) -> float:
        return (
            s.content * self.content
            + s.schedule * self.schedule
            + s.teacher * self.teacher
            + s.class_size * self.class_size
            + s.location * self.location
            + s.timing * self.timing
            + s.availability * self.availability
        )


def _parse_window(window: str) -> Optional[tuple[time, time]]:
    try:
        start, end = window.split("-", 1)
        return parse_hhmm(start), parse_hhmm(end)
    except ValueError:
        return None


def within_preferred_time(preferences: SchedulePreferences, start_time: datetime) -> bool:
    windows = preferences.preferred_times.get(str(iso_weekday(start_time)), [])
    at = start_time.time()
    for raw in windows:
        bounds = _parse_window(raw)
        if bounds and bounds[0] <= at < bounds[1]:
            return True
    return False


class WeightedMakeUpScorer(MakeUpScorer):
    def __init__(self, weights: Optional[ScoringWeights] = None):
        self._weights = weights or ScoringWeights()

    def score(
        self,
        *,
        candidate: ClassOffering,
        original: ClassOffering,
        preferences: SchedulePreferences,
        start_time: datetime,
    ) -> ScoredCandidate:
        scores = SubScores(
            content=self._content(candidate, original),
            schedule=self._schedule(preferences, start_time),
            teacher=self._teacher(candidate, original, preferences),
            class_size=self._class_size(candidate, preferences),
            location=0.8 if candidate.is_online else 0.7,
            timing=1.0 if within_preferred_time(preferences, start_time) else 0.5,
            availability=self._availability(candidate),
        )
        return ScoredCandidate(
            candidate=candidate,
            start_time=start_time,
            scores=scores,
            compatibility_score=round(min(max(self._weights.combine(scores), 0.0), 1.0), 4),
        )

    @staticmethod
    def _content(candidate: ClassOffering, original: ClassOffering) -> float:
        return 0.9 if candidate.course_type == original.course_type else 0.5

    @staticmethod
    def _schedule(preferences: SchedulePreferences, start_time: datetime) -> float:
        return 1.0 if iso_weekday(start_time) in preferences.preferred_days else 0.4

    @staticmethod
    def _teacher(candidate: ClassOffering, original: ClassOffering, preferences: SchedulePreferences) -> float:
        if candidate.teacher_id is not None and candidate.teacher_id == original.teacher_id:
            return 1.0
        if candidate.teacher_id in preferences.preferred_teachers:
            return 0.9
        if candidate.teacher_id in preferences.avoided_teachers:
            return 0.2
        return 0.7 if preferences.willing_to_change_teacher else 0.4

    @staticmethod
    def _class_size(candidate: ClassOffering, preferences: SchedulePreferences) -> float:
        enrolled = candidate.current_enrollment
        low, high = preferences.preferred_class_size_min, preferences.preferred_class_size_max
        if low <= enrolled <= high:
            return 1.0
        distance = max(0, low - enrolled) + max(0, enrolled - high)
        widest = max(high, candidate.capacity, 1)
        return max(0.1, min(1.0, 1 - distance / widest))

    @staticmethod
    def _availability(candidate: ClassOffering) -> float:
        if candidate.capacity <= 0:
            return 0.0
        return min(1.0, candidate.available_spots / candidate.capacity)
