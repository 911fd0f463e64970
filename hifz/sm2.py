import math
from datetime import datetime, timedelta
from typing import NamedTuple

from hifz.models import Grade, ItemStatus

MIN_EASE = 1.3
INITIAL_EASE = 2.5

# Mastery: a long run of correct answers, or a shorter one on an easy item
MASTERY_STREAK = 10
FAST_MASTERY_STREAK = 5
FAST_MASTERY_EASE = 2.9


class ReviewUpdate(NamedTuple):
    ease_factor: float
    interval_days: int
    consecutive_correct: int
    status: ItemStatus
    next_review_at: datetime


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SM2Algorithm:
    """
    Four-level SM-2 variant for verse memorization.

    Grades run Again=0, Hard=1, Good=2, Easy=3. The ease update is shifted so
    that Good leaves the ease factor unchanged; Again and Hard always restart
    the one day cycle.
    """

    @staticmethod
    def ease_delta(grade: Grade) -> float:
        """Again -0.32, Hard -0.14, Good 0, Easy +0.1"""
        miss = 3 - int(grade)
        # Rounded so Good is exactly 0.0
        return round(0.1 - miss * (0.08 + miss * 0.02), 2)

    @staticmethod
    def next_status(
        status: ItemStatus,
        grade: Grade,
        ease_factor: float,
        consecutive_correct: int,
        interval_days: int
    ) -> ItemStatus:
        """
        Lifecycle transition after a grade, given the already updated
        ease, streak and interval.
        """
        if status == ItemStatus.MASTERED and grade < Grade.GOOD:
            # A lapse costs mastery but never sends the item back to learning
            return ItemStatus.REVIEW
        if status != ItemStatus.MASTERED and (
            consecutive_correct >= MASTERY_STREAK
            or (ease_factor >= FAST_MASTERY_EASE and consecutive_correct >= FAST_MASTERY_STREAK)
        ):
            return ItemStatus.MASTERED
        if interval_days > 0:
            return ItemStatus.REVIEW
        return ItemStatus.LEARNING

    @staticmethod
    def calculate_next_review(
        ease_factor: float,
        interval_days: int,
        consecutive_correct: int,
        status: ItemStatus,
        grade: Grade,
        reference_time: datetime
    ) -> ReviewUpdate:
        """
        Apply one grade to the current SM-2 state.

        Args:
            ease_factor: Current EF, never below 1.3
            interval_days: Current interval; 0 means never graded
            consecutive_correct: Successive grades >= Good so far
            status: Current lifecycle status
            grade: Recall quality of this attempt
            reference_time: Time of the attempt (supplied by the caller)

        Returns:
            ReviewUpdate(ease_factor, interval_days, consecutive_correct, status, next_review_at)
        """
        grade = Grade.parse(grade)

        if grade < Grade.GOOD:
            new_consecutive = 0
        else:
            new_consecutive = consecutive_correct + 1

        delta = SM2Algorithm.ease_delta(grade)
        if delta:
            new_ease = round(ease_factor + delta, 2)
        else:
            new_ease = ease_factor
        if new_ease < MIN_EASE:
            new_ease = MIN_EASE

        if grade < Grade.GOOD:
            new_interval = 1
        elif interval_days == 0:
            new_interval = 1
        elif interval_days == 1:
            new_interval = 6
        else:
            new_interval = _round_half_up(interval_days * new_ease)

        new_status = SM2Algorithm.next_status(
            status, grade, new_ease, new_consecutive, new_interval
        )
        next_review_at = reference_time + timedelta(days=new_interval)

        return ReviewUpdate(new_ease, new_interval, new_consecutive, new_status, next_review_at)
