"""Turns scored candidates into the ranked, diversified suggestion list shown to a student."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from ..common.datetime_utils import iso_weekday
from ..core.constants import MAX_SUGGESTIONS, MAX_SUGGESTIONS_PER_DAY, MAX_SUGGESTIONS_PER_TEACHER
from .model import MakeUpSuggestion, SubScores
from .scoring.base import ScoredCandidate

BENEFIT_THRESHOLD = 0.8
DRAWBACK_THRESHOLD = 0.6


@dataclass(frozen=True)
class SuggestionPolicy:
    min_overall_score: float = 0.4
    min_content_score: float = 0.3
    min_schedule_score: float = 0.2
    excellent_threshold: float = 0.85
    high_threshold: float = 0.70
    medium_threshold: float = 0.55
    max_suggestions: int = MAX_SUGGESTIONS
    max_per_teacher: int = MAX_SUGGESTIONS_PER_TEACHER
    max_per_day: int = MAX_SUGGESTIONS_PER_DAY

    def accepts(self, scored: ScoredCandidate) -> bool:
        return (
            scored.compatibility_score >= self.min_overall_score
            and scored.scores.content >= self.min_content_score
            and scored.scores.schedule >= self.min_schedule_score
        )

    def strength(self, score: float) -> str:
        if score >= self.excellent_threshold:
            return "excellent"
        if score >= self.high_threshold:
            return "high"
        if score >= self.medium_threshold:
            return "medium"
        return "low"


def benefits_for(scored: ScoredCandidate) -> list[str]:
    s = scored.scores
    c = scored.candidate
    out: list[str] = []
    if s.content > BENEFIT_THRESHOLD:
        out.append("Excellent content match with your original class")
    if s.schedule > BENEFIT_THRESHOLD:
        out.append("Matches your preferred schedule")
    if s.teacher >= 1.0:
        out.append("Same teacher as your original class")
    elif s.teacher > BENEFIT_THRESHOLD:
        out.append("Taught by your preferred teacher")
    if s.class_size > BENEFIT_THRESHOLD:
        out.append("Ideal class size for your learning style")
    if s.timing > BENEFIT_THRESHOLD:
        out.append("Fits your preferred time of day")
    if c.is_online:
        out.append("Online format - no travel required")
    if c.available_spots > 3:
        out.append("Plenty of available spots")
    if not out:
        out.append("Good alternative option available")
    return out


def drawbacks_for(scored: ScoredCandidate) -> list[str]:
    s = scored.scores
    c = scored.candidate
    out: list[str] = []
    if s.content < DRAWBACK_THRESHOLD:
        out.append("Content may differ from your original class")
    if s.schedule < DRAWBACK_THRESHOLD:
        out.append("Schedule may not match your preferred days")
    if s.teacher < DRAWBACK_THRESHOLD:
        out.append("Different teacher than preferred")
    if s.timing < DRAWBACK_THRESHOLD:
        out.append("Outside your preferred time of day")
    if c.available_spots == 1:
        out.append("Limited availability - book soon")
    if not c.is_online and c.location:
        out.append("In-person class - consider travel time")
    return out


def _reasoning(scores: SubScores, overall: float, strength: str) -> str:
    return (
        f"{strength.capitalize()} match ({overall:.2f}): content {scores.content:.2f}, "
        f"schedule {scores.schedule:.2f}, teacher {scores.teacher:.2f}, "
        f"class size {scores.class_size:.2f}, timing {scores.timing:.2f}"
    )


def to_suggestion(scored: ScoredCandidate, policy: SuggestionPolicy) -> MakeUpSuggestion:
    c = scored.candidate
    strength = policy.strength(scored.compatibility_score)
    return MakeUpSuggestion(
        suggestion_id=f"suggestion-{c.class_id}-{scored.start_time:%Y%m%d%H%M}",
        class_id=c.class_id,
        class_name=c.class_name,
        course_type=c.course_type,
        start_time=scored.start_time,
        end_time=scored.start_time + timedelta(minutes=c.duration_minutes),
        duration_minutes=c.duration_minutes,
        compatibility_score=scored.compatibility_score,
        scores=scored.scores,
        recommendation_strength=strength,
        reasoning=_reasoning(scored.scores, scored.compatibility_score, strength),
        teacher_id=c.teacher_id,
        teacher_name=c.teacher_name,
        is_online=c.is_online,
        location=c.location,
        available_spots=c.available_spots,
        benefits=benefits_for(scored),
        drawbacks=drawbacks_for(scored),
    )


def rank_suggestions(scored: Iterable[ScoredCandidate], policy: SuggestionPolicy) -> list[MakeUpSuggestion]:
    """Filter by thresholds, order by score (highest first), then cap per teacher and per weekday."""
    ranked = sorted((s for s in scored if policy.accepts(s)), key=lambda s: s.compatibility_score, reverse=True)

    chosen: list[MakeUpSuggestion] = []
    per_teacher: dict[object, int] = {}
    per_day: dict[int, int] = {}
    for s in ranked:
        if len(chosen) >= policy.max_suggestions:
            break
        teacher = s.candidate.teacher_id
        day = iso_weekday(s.start_time)
        if teacher is not None and per_teacher.get(teacher, 0) >= policy.max_per_teacher:
            continue
        if per_day.get(day, 0) >= policy.max_per_day:
            continue
        chosen.append(to_suggestion(s, policy))
        if teacher is not None:
            per_teacher[teacher] = per_teacher.get(teacher, 0) + 1
        per_day[day] = per_day.get(day, 0) + 1
    return chosen
