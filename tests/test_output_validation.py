"""Tests for structured-output validation of inference results."""

import pytest

from daybook.core.output_validation import validate_model_output
from daybook.core.schemas_intents import (
    ChatIntent,
    CreateHabitIntent,
    CreateNoteIntent,
    CreateTaskIntent,
    HabitFrequency,
    Priority,
    UpdateTaskIntent,
)


def _output(*actions, reply="Added.", transcript="buy milk"):
    return {"transcript": transcript, "reply": reply, "actions": list(actions)}


class TestAccepted:
    def test_two_tasks_in_order(self):
        outcome = validate_model_output(_output(
            {"kind": "create_task", "params": {"title": "Buy milk", "due_date": "2024-05-02"}},
            {"kind": "create_task", "params": {"title": "Call Ali", "due_date": "2024-05-02"}},
        ))

        assert outcome.ok
        assert outcome.errors == []
        actions = outcome.output.actions
        assert [type(a) for a in actions] == [CreateTaskIntent, CreateTaskIntent]
        assert [a.params.title for a in actions] == ["Buy milk", "Call Ali"]

    def test_every_kind_is_recognized(self):
        outcome = validate_model_output(_output(
            {"kind": "create_task", "params": {}},
            {"kind": "create_note", "params": {"content": "x"}},
            {"kind": "create_project", "params": {"title": "Home"}},
            {"kind": "create_habit", "params": {"name": "Read"}},
            {"kind": "update_task", "params": {"target_id": "t1", "title": "y"}},
            {"kind": "update_note", "params": {"target_id": "n1", "content": "z"}},
            {"kind": "update_habit", "params": {"target_id": "h1", "target_count": 2}},
            {"kind": "chat", "params": {}},
        ))

        assert outcome.ok
        assert len(outcome.output.actions) == 8

    def test_missing_actions_means_no_actions(self):
        outcome = validate_model_output({"reply": "Hi!"})
        assert outcome.ok
        assert outcome.output.actions == []

    def test_reply_and_transcript_are_optional(self):
        outcome = validate_model_output({"actions": [{"kind": "chat", "params": {}}]})
        assert outcome.ok
        assert outcome.output.reply is None
        assert isinstance(outcome.output.actions[0], ChatIntent)

    def test_chat_with_null_params(self):
        outcome = validate_model_output(_output({"kind": "chat", "params": None}))
        assert outcome.ok

    def test_lenient_vocabulary(self):
        outcome = validate_model_output(_output(
            {"kind": "create_task", "params": {"priority": "HIGH", "tags": "work", "projectId": "p1"}},
            {"kind": "create_task", "params": {"priority": "urgent", "tags": ["a", "", None, " b "]}},
            {"kind": "create_habit", "params": {"frequency": "monthly", "target_count": 0}},
        ))

        assert outcome.ok
        first, second, habit = outcome.output.actions
        assert first.params.priority == Priority.HIGH
        assert first.params.tags == ["work"]
        assert first.params.project_id == "p1"
        assert second.params.priority is None
        assert second.params.tags == ["a", "b"]
        assert isinstance(habit, CreateHabitIntent)
        assert habit.params.frequency is None
        assert habit.params.target_count is None

    def test_camel_case_target_id(self):
        outcome = validate_model_output(_output(
            {"kind": "update_task", "params": {"targetId": "t1", "priority": "low"}},
        ))
        assert outcome.ok
        action = outcome.output.actions[0]
        assert isinstance(action, UpdateTaskIntent)
        assert action.params.target_id == "t1"

    def test_unknown_param_keys_are_ignored(self):
        outcome = validate_model_output(_output(
            {"kind": "create_note", "params": {"content": "x", "reply": "legacy"}},
        ))
        assert outcome.ok
        assert isinstance(outcome.output.actions[0], CreateNoteIntent)

    def test_weekly_habit(self):
        outcome = validate_model_output(_output(
            {"kind": "create_habit", "params": {"name": "Run", "frequency": "Weekly"}},
        ))
        assert outcome.output.actions[0].params.frequency == HabitFrequency.WEEKLY


class TestRejected:
    @pytest.mark.parametrize("raw", ["not json at all", None, 42, ["a"], ""])
    def test_non_object(self, raw):
        outcome = validate_model_output(raw)
        assert not outcome.ok
        assert outcome.output is None
        assert "expected an object" in outcome.errors[0]

    def test_reply_must_be_string(self):
        outcome = validate_model_output({"reply": 5, "actions": []})
        assert not outcome.ok
        assert any(e.startswith("reply") for e in outcome.errors)

    def test_transcript_must_be_string(self):
        outcome = validate_model_output({"transcript": ["x"], "actions": []})
        assert not outcome.ok

    def test_actions_must_be_list(self):
        outcome = validate_model_output({"reply": "ok", "actions": {"kind": "chat"}})
        assert not outcome.ok
        assert "actions: expected a list" in outcome.errors

    def test_unrecognized_kind(self):
        outcome = validate_model_output(_output({"kind": "delete_task", "params": {}}))
        assert not outcome.ok
        assert "unrecognized kind" in outcome.errors[0]

    def test_params_must_be_object(self):
        outcome = validate_model_output(_output({"kind": "create_task", "params": "Buy milk"}))
        assert not outcome.ok
        assert "params: expected an object" in outcome.errors[0]

    def test_action_must_be_object(self):
        outcome = validate_model_output(_output("create_task"))
        assert not outcome.ok

    def test_missing_params_on_create(self):
        outcome = validate_model_output(_output({"kind": "create_task"}))
        assert not outcome.ok

    def test_wrong_field_type(self):
        outcome = validate_model_output(_output({"kind": "create_task", "params": {"title": {"x": 1}}}))
        assert not outcome.ok

    def test_too_many_actions(self):
        actions = [{"kind": "create_task", "params": {"title": str(i)}} for i in range(4)]
        outcome = validate_model_output(_output(*actions), max_actions=3)
        assert not outcome.ok
        assert "exceeds the limit of 3" in outcome.errors[0]

    def test_one_bad_action_rejects_the_whole_batch(self):
        outcome = validate_model_output(_output(
            {"kind": "create_task", "params": {"title": "fine"}},
            {"kind": "launch_rocket", "params": {}},
        ))
        assert not outcome.ok
        assert outcome.output is None
