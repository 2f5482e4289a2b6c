"""Tests for video progress tracking and completion XP."""

import pytest

from telxtab.core import progress_tracker
from telxtab.core.progress_tracker import (
    ProgressError,
    compute_percent,
    should_persist,
)
from telxtab.db import courses_repository, profiles_repository, progress_repository


@pytest.fixture
def lesson():
    course = courses_repository.create_course("English Basics")
    return courses_repository.create_lesson(course.id, "Greetings", duration=600)


class TestComputePercent:
    """Tests for compute_percent()."""

    def test_rounds_to_whole_percent(self):
        """Player position becomes a whole percent."""
        assert compute_percent(30, 600) == 5
        assert compute_percent(299, 600) == 50

    def test_clamps_to_range(self):
        """Positions past the end clamp to 100."""
        assert compute_percent(700, 600) == 100
        assert compute_percent(-5, 600) == 0

    def test_zero_duration_raises(self):
        """A video without duration can't be measured."""
        with pytest.raises(ProgressError):
            compute_percent(10, 0)

    @pytest.mark.parametrize(
        "current_time,duration",
        [(float("inf"), 60), (10, float("nan")), (float("nan"), 60), (10, float("inf"))],
    )
    def test_non_finite_raises(self, current_time, duration):
        """Infinite or NaN player values are refused."""
        with pytest.raises(ProgressError):
            compute_percent(current_time, duration)


class TestShouldPersist:
    """Tests for should_persist()."""

    @pytest.mark.parametrize("percent", [0, 5, 10, 55, 95, 100])
    def test_step_boundaries_persist(self, percent):
        """Multiples of the step are written."""
        assert should_persist(percent) is True

    @pytest.mark.parametrize("percent", [1, 7, 33, 99])
    def test_between_steps_skipped(self, percent):
        """Values between steps are not written."""
        assert should_persist(percent) is False

    def test_custom_step(self):
        """A custom step overrides the configured one."""
        assert should_persist(20, step=10) is True
        assert should_persist(25, step=10) is False


class TestRecordProgress:
    """Tests for record_progress()."""

    def test_first_report_inserts_row(self, user, lesson):
        """The first boundary report creates the progress row."""
        update = progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 10)
        assert update.written is True
        assert update.completed is False

        stored = progress_repository.get_progress(user.id, lesson.id)
        assert stored.progress_percent == 10

    def test_non_boundary_not_written(self, user, lesson):
        """Off-step reports are acknowledged but not stored."""
        update = progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 12)
        assert update.written is False
        assert progress_repository.get_progress(user.id, lesson.id) is None

    def test_progress_never_decreases(self, user, lesson):
        """Seeking back doesn't lower stored progress."""
        progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 60)
        update = progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 20)

        assert update.written is False
        assert progress_repository.get_progress(user.id, lesson.id).progress_percent == 60

    def test_hundred_marks_completed(self, user, lesson):
        """Reaching 100% completes the lesson."""
        update = progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 100)
        assert update.completed is True
        assert progress_repository.get_progress(user.id, lesson.id).completed is True

    def test_out_of_range_raises(self, user, lesson):
        """Percent must be 0..100."""
        with pytest.raises(ProgressError):
            progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 101)

    def test_lesson_from_other_course_raises(self, user, lesson):
        """The lesson has to belong to the reported course."""
        other = courses_repository.create_course("Other")
        with pytest.raises(ProgressError):
            progress_tracker.record_progress(user.id, other.id, lesson.id, 10)


class TestCompleteLesson:
    """Tests for complete_lesson()."""

    def test_awards_xp_once(self, user, lesson):
        """Completion XP is granted on the first end event only."""
        first = progress_tracker.complete_lesson(user.id, lesson.course_id, lesson.id)
        second = progress_tracker.complete_lesson(user.id, lesson.course_id, lesson.id)

        assert first.xp_awarded is True
        assert first.xp_total == 100
        assert second.xp_awarded is False
        assert second.xp_total == 100
        assert profiles_repository.get_profile(user.id).xp == 100

    def test_completion_after_partial_progress(self, user, lesson):
        """Finishing a partially watched lesson updates the same row."""
        progress_tracker.record_progress(user.id, lesson.course_id, lesson.id, 40)
        update = progress_tracker.complete_lesson(user.id, lesson.course_id, lesson.id)

        assert update.completed is True
        rows = progress_tracker.get_course_progress(user.id, lesson.course_id)
        assert len(rows) == 1
        assert rows[0].progress_percent == 100
        assert rows[0].xp_awarded is True
