"""Tests for entity construction and mutation rules"""
from datetime import date, datetime, timedelta, timezone

import pytest

from kudos.core.errors import AlreadyCompletedError, ValidationError
from kudos.domain.entities import Category, PointEntry, Settings, Streak, Subtask, Task, User
from kudos.domain.values import Priority, PriorityValue, Theme, new_id

USER_ID = "11111111-1111-1111-1111-111111111111"
T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_task(**overrides):
    fields = {"user_id": USER_ID, "title": "Write report", "now": T0}
    fields.update(overrides)
    return Task.create(**fields)


class TestTaskCompletion:
    def test_complete_active_task(self):
        task = make_task()
        done_at = T0 + timedelta(hours=2)

        task.complete(done_at)

        assert task.completed is True
        assert task.completed_at == done_at
        assert task.updated_at == done_at

    def test_second_completion_fails_and_keeps_timestamp(self):
        """Completing twice raises and leaves the first completion untouched"""
        task = make_task()
        first = T0 + timedelta(hours=1)
        task.complete(first)

        with pytest.raises(AlreadyCompletedError):
            task.complete(first + timedelta(hours=1))

        assert task.completed_at == first
        assert task.updated_at == first

    def test_completed_flag_requires_timestamp(self):
        with pytest.raises(ValidationError):
            Task(id=new_id(), user_id=USER_ID, title="x", completed=True)

        with pytest.raises(ValidationError):
            Task(id=new_id(), user_id=USER_ID, title="x", completed=False, completed_at=T0)


class TestTaskTitle:
    def test_title_of_200_characters_is_accepted(self):
        task = make_task(title="a" * 200)
        assert len(task.title) == 200

    def test_title_of_201_characters_is_rejected(self):
        with pytest.raises(ValidationError):
            make_task(title="a" * 201)

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_empty_title_is_rejected(self, title):
        with pytest.raises(ValidationError):
            make_task(title=title)

    def test_padding_counts_toward_the_limit(self):
        with pytest.raises(ValidationError):
            make_task(title=" " + "a" * 199 + " ")

    def test_update_title_restamps_updated_at(self):
        task = make_task()
        later = T0 + timedelta(minutes=5)

        task.update_title("  Write the quarterly report  ", later)

        assert task.title == "Write the quarterly report"
        assert task.updated_at == later

    def test_failed_update_leaves_title(self):
        task = make_task()
        with pytest.raises(ValidationError):
            task.update_title("b" * 201)
        assert task.title == "Write report"
        assert task.updated_at == T0


class TestTaskFields:
    def test_malformed_identifiers_are_rejected(self):
        with pytest.raises(ValidationError):
            make_task(user_id="not-a-uuid")
        with pytest.raises(ValidationError):
            make_task(category_id="42")
        with pytest.raises(ValidationError):
            make_task(tag_ids=["nope"])

    def test_duplicate_tags_collapse(self):
        tag = new_id()
        task = make_task(tag_ids=[tag, tag])
        assert task.tag_ids == [tag]

    def test_adjust_priority(self):
        task = make_task()
        task.adjust_priority("urgent")
        assert task.priority is Priority.URGENT
        assert task.priority_value.get_points() == 50

    def test_invalid_priority_is_rejected(self):
        with pytest.raises(ValidationError):
            make_task(priority="CRITICAL")


class TestPriorityValue:
    @pytest.mark.parametrize("priority, points", [
        (Priority.LOW, 10),
        (Priority.MEDIUM, 20),
        (Priority.HIGH, 30),
        (Priority.URGENT, 50),
    ])
    def test_points_per_priority(self, priority, points):
        assert PriorityValue(priority).get_points() == points
        assert PriorityValue(priority.value).get_points() == points

    @pytest.mark.parametrize("value", ["", "SUPER", 3, None])
    def test_unknown_values_are_rejected(self, value):
        with pytest.raises(ValidationError):
            PriorityValue(value)


class TestOtherEntities:
    def test_subtask_order_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            Subtask.create(new_id(), "Step", order=-1)

    def test_subtask_double_completion(self):
        subtask = Subtask.create(new_id(), "Step")
        subtask.complete()
        with pytest.raises(AlreadyCompletedError):
            subtask.complete()

    def test_category_color_format(self):
        category = Category.create(USER_ID, "Work", color="#FFAA00")
        assert category.color == "#ffaa00"
        with pytest.raises(ValidationError):
            Category.create(USER_ID, "Home", color="orange")

    def test_category_restyle_clears_only_named_fields(self):
        category = Category.create(USER_ID, "Work", color="#FFAA00", icon="briefcase", now=T0)
        later = T0 + timedelta(minutes=1)

        category.restyle(later, color=None)

        assert category.color is None
        assert category.icon == "briefcase"
        assert category.updated_at == later

    def test_category_restyle_rejects_unknown_fields(self):
        category = Category.create(USER_ID, "Work", color="#ffaa00")
        with pytest.raises(ValidationError):
            category.restyle(name="Play")
        assert category.color == "#ffaa00"

    def test_user_email_is_normalized(self):
        user = User.create("idp|x", "  Someone@Example.COM ")
        assert user.email == "someone@example.com"
        with pytest.raises(ValidationError):
            User.create("idp|y", "not-an-email")

    def test_streak_longest_never_below_current(self):
        with pytest.raises(ValidationError):
            Streak(id=new_id(), user_id=USER_ID, current_streak=3, longest_streak=2)

    def test_point_entry_amount_must_be_non_zero(self):
        with pytest.raises(ValidationError):
            PointEntry(id=new_id(), user_id=USER_ID, amount=0, reason="task_completed")

    def test_point_entry_is_immutable(self):
        entry = PointEntry(id=new_id(), user_id=USER_ID, amount=20, reason="task_completed")
        with pytest.raises(AttributeError):
            entry.amount = 500

    def test_settings_update(self):
        settings = Settings.defaults(USER_ID)
        settings.update(theme="dark", show_points=False)
        assert settings.theme is Theme.DARK
        assert settings.show_points is False
        assert settings.show_streak is True

    def test_settings_reject_unknown_toggle(self):
        settings = Settings.defaults(USER_ID)
        with pytest.raises(ValidationError):
            settings.update(confetti=True)

    def test_streak_apply_keeps_last_date(self):
        streak = Streak.start(USER_ID)

        class Update:
            current_streak = 1
            longest_streak = 1
            last_active_date = date(2024, 3, 1)

        streak.apply(Update)
        assert (streak.current_streak, streak.longest_streak) == (1, 1)
        assert streak.last_active_date == date(2024, 3, 1)
