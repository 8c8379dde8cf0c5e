"""Unit tests for models/task_model.py against the in-memory Firestore"""
from datetime import datetime, timedelta, timezone

import pytest

from models.task_model import TaskModel, is_urgent
from utils.errors import NotFoundError


def _due_in(hours):
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


@pytest.fixture
def users(org_users):
    return {u["id"]: u for u in org_users}


@pytest.fixture
def model(seeded_db):
    return TaskModel(seeded_db)


@pytest.fixture
def task(model, users):
    return model.create_task(users["l1"], {
        "title": "Build login",
        "assigned_to_ids": ["m1"],
        "due_date": _due_in(72),
    }, assignee_names=["Mia Member"])


class TestIsUrgent:

    def test_within_thirty_hours(self):
        now = datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert is_urgent(now + timedelta(hours=29), now)
        assert is_urgent(now - timedelta(hours=1), now)
        assert not is_urgent(now + timedelta(hours=30), now)


class TestCreateTask:

    def test_creates_task_and_log(self, seeded_db, task):
        stored = seeded_db.docs("tasks")[task["id"]]
        assert stored["status"] == "To Do"
        assert stored["assigned_by_id"] == "l1"
        assert stored["urgent"] is False

        logs = list(seeded_db.docs("logs").values())
        assert len(logs) == 1
        assert logs[0]["message"] == 'Lee Lead assigned "Build login" to Mia Member.'
        assert logs[0]["task_id"] == task["id"]

    def test_urgent_flag(self, model, users):
        created = model.create_task(users["l1"], {
            "title": "Hotfix", "assigned_to_ids": ["m1"], "due_date": _due_in(5),
        })
        assert created["urgent"] is True

    def test_member_may_assign_self(self, model, users):
        created = model.create_task(users["m1"], {
            "title": "Notes", "assigned_to_ids": ["m1"], "due_date": _due_in(48),
        })
        assert created["assigned_to_ids"] == ["m1"]

    def test_member_cannot_assign_others(self, seeded_db, model, users):
        with pytest.raises(PermissionError):
            model.create_task(users["m1"], {
                "title": "Notes", "assigned_to_ids": ["m1", "m2"], "due_date": _due_in(48),
            })
        assert seeded_db.docs("tasks") == {}

    def test_invalid_payload(self, model, users):
        with pytest.raises(ValueError) as exc:
            model.create_task(users["l1"], {"title": " ", "due_date": "soon"})
        assert "Task title is required" in str(exc.value)


class TestUpdateTask:

    def test_assigner_can_edit(self, seeded_db, model, users, task):
        updated = model.update_task(users["l1"], task["id"], {
            "title": "Build login v2", "assigned_to_ids": ["m1"], "due_date": _due_in(72),
        })
        assert updated["title"] == "Build login v2"
        assert seeded_db.docs("tasks")[task["id"]]["title"] == "Build login v2"

    def test_oversight_can_edit(self, model, users, task):
        updated = model.update_task(users["sec"], task["id"], {
            "title": "Renamed", "assigned_to_ids": ["m1"], "due_date": _due_in(72),
        })
        assert updated["title"] == "Renamed"

    def test_assignee_cannot_edit(self, model, users, task):
        with pytest.raises(PermissionError):
            model.update_task(users["m1"], task["id"], {
                "title": "Mine now", "assigned_to_ids": ["m1"], "due_date": _due_in(72),
            })

    def test_missing_task(self, model, users):
        with pytest.raises(NotFoundError):
            model.update_task(users["owner"], "nope", {"title": "x"})


class TestUpdateStatus:

    def test_assignee_moves_status(self, seeded_db, model, users, task):
        result = model.update_status(users["m1"], task["id"], "In Progress")
        assert result["status"] == "In Progress"
        messages = [l["message"] for l in seeded_db.docs("logs").values()]
        assert 'Mia Member updated the status of "Build login" from "To Do" to "In Progress".' in messages

    def test_assigner_is_not_an_assignee(self, model, users, task):
        with pytest.raises(PermissionError):
            model.update_status(users["l1"], task["id"], "Done")

    def test_invalid_status(self, model, users, task):
        with pytest.raises(ValueError):
            model.update_status(users["m1"], task["id"], "Blocked")


class TestDeleteTask:

    def test_deletes_children_in_one_batch(self, seeded_db, model, users, task):
        seeded_db.seed("comments", [
            {"id": "c1", "task_id": task["id"], "body": "hi"},
            {"id": "c2", "task_id": "other", "body": "keep"},
        ])
        seeded_db.seed("subtasks", [{"id": "s1", "task_id": task["id"]}])

        model.delete_task(users["owner"], task["id"])

        assert task["id"] not in seeded_db.docs("tasks")
        assert list(seeded_db.docs("comments")) == ["c2"]
        assert seeded_db.docs("subtasks") == {}
        messages = [l["message"] for l in seeded_db.docs("logs").values()]
        assert 'Olivia Owner deleted the task "Build login".' in messages

    def test_assignee_cannot_delete(self, seeded_db, model, users, task):
        with pytest.raises(PermissionError):
            model.delete_task(users["m1"], task["id"])
        assert task["id"] in seeded_db.docs("tasks")

    def test_missing_task(self, model, users):
        with pytest.raises(NotFoundError):
            model.delete_task(users["owner"], "nope")


class TestGetAllTasks:

    def test_newest_first(self, seeded_db):
        seeded_db.seed("tasks", [
            {"id": "old", "title": "Old", "created_at": "2025-01-01T00:00:00+00:00"},
            {"id": "new", "title": "New", "created_at": "2025-02-01T00:00:00+00:00"},
            {"id": "undated", "title": "Undated"},
        ])
        assert [t["id"] for t in TaskModel(seeded_db).get_all_tasks()] == ["new", "old", "undated"]


class TestReassignment:

    def test_member_assigner_cannot_reassign_to_others(self, seeded_db, model, users):
        own = model.create_task(users["m1"], {
            "title": "Notes", "assigned_to_ids": ["m1"], "due_date": _due_in(48),
        })
        with pytest.raises(PermissionError, match="only assign tasks to yourself"):
            model.update_task(users["m1"], own["id"], {
                "title": "Notes", "assigned_to_ids": ["m1", "m2"], "due_date": _due_in(48),
            })
        assert seeded_db.docs("tasks")[own["id"]]["assigned_to_ids"] == ["m1"]

    def test_lead_may_reassign(self, model, users, task):
        updated = model.update_task(users["l1"], task["id"], {
            "title": "Build login", "assigned_to_ids": ["m1", "m2"], "due_date": _due_in(72),
        })
        assert updated["assigned_to_ids"] == ["m1", "m2"]


class TestNotifications:

    def _notes(self, db, user_id):
        return [n for n in db.docs("notifications").values() if n["user_id"] == user_id]

    def test_assignees_are_notified_except_the_assigner(self, seeded_db, model, users):
        created = model.create_task(users["l1"], {
            "title": "Pairing", "assigned_to_ids": ["m1", "l1"], "due_date": _due_in(72),
        })
        notes = list(seeded_db.docs("notifications").values())
        assert [n["user_id"] for n in notes] == ["m1"]
        assert notes[0]["type"] == "TASK_ASSIGNED"
        assert notes[0]["task_id"] == created["id"]
        assert notes[0]["is_read"] is False

    def test_status_change_notifies_assigner(self, seeded_db, model, users, task):
        model.update_status(users["m1"], task["id"], "In Progress")
        notes = self._notes(seeded_db, "l1")
        assert [n["type"] for n in notes] == ["STATUS_UPDATED"]

    def test_closing_clears_pending_notifications(self, seeded_db, model, users, task):
        assert self._notes(seeded_db, "m1")
        model.update_status(users["m1"], task["id"], "Done")
        assert self._notes(seeded_db, "m1") == []
        assert [n["message"] for n in self._notes(seeded_db, "l1")] == [
            "Mia Member updated the status of Build login to Done"
        ]


class TestLinks:

    def test_assignee_adds_link_once(self, seeded_db, model, users, task):
        model.add_link(users["m1"], task["id"], "https://example.com/design")
        result = model.add_link(users["m1"], task["id"], "https://example.com/design")
        assert result["links"] == ["https://example.com/design"]
        assert seeded_db.docs("tasks")[task["id"]]["links"] == ["https://example.com/design"]

    def test_invalid_url(self, model, users, task):
        with pytest.raises(ValueError, match="valid URL"):
            model.add_link(users["m1"], task["id"], "not a url")

    def test_non_assignee(self, model, users, task):
        with pytest.raises(PermissionError):
            model.add_link(users["l1"], task["id"], "https://example.com")


class TestComments:

    def test_comment_logs_and_notifies_others(self, seeded_db, model, users, task):
        comment = model.add_comment(users["d1"], task["id"], "  Looks good  ")
        assert comment["message"] == "Looks good"
        assert model.get_comments(task["id"])[0]["user_id"] == "d1"

        commented = [n["user_id"] for n in seeded_db.docs("notifications").values()
                     if n["type"] == "COMMENT_ADDED"]
        assert sorted(commented) == ["l1", "m1"]
        messages = [l["message"] for l in seeded_db.docs("logs").values()]
        assert 'Dana Director commented on "Build login".' in messages

    def test_empty_comment(self, model, users, task):
        with pytest.raises(ValueError, match="Comment cannot be empty"):
            model.add_comment(users["m1"], task["id"], "   ")

    def test_comment_on_missing_task(self, model, users):
        with pytest.raises(NotFoundError):
            model.add_comment(users["m1"], "nope", "hi")


class TestSubtasks:

    def test_add_toggle_and_reorder(self, seeded_db, model, users, task):
        first = model.add_subtask(users["m1"], task["id"], "Schema")
        second = model.add_subtask(users["m1"], task["id"], "Endpoints")
        assert (first["order"], second["order"]) == (0, 1)

        toggled = model.toggle_subtask(users["m1"], task["id"], first["id"], True)
        assert toggled["is_completed"] is True
        assert seeded_db.docs("subtasks")[first["id"]]["is_completed"] is True

        reordered = model.reorder_subtasks(users["m1"], task["id"], [second["id"], first["id"]])
        assert [s["id"] for s in reordered] == [second["id"], first["id"]]

    def test_only_assignees_manage_subtasks(self, model, users, task):
        with pytest.raises(PermissionError):
            model.add_subtask(users["l1"], task["id"], "Schema")

    def test_toggle_requires_boolean(self, model, users, task):
        sub = model.add_subtask(users["m1"], task["id"], "Schema")
        with pytest.raises(ValueError):
            model.toggle_subtask(users["m1"], task["id"], sub["id"], "yes")

    def test_toggle_subtask_of_another_task(self, seeded_db, model, users, task):
        seeded_db.seed("subtasks", [{"id": "foreign", "task_id": "other", "title": "x", "order": 0}])
        with pytest.raises(NotFoundError):
            model.toggle_subtask(users["m1"], task["id"], "foreign", True)

    def test_reorder_must_cover_every_subtask(self, model, users, task):
        sub = model.add_subtask(users["m1"], task["id"], "Schema")
        model.add_subtask(users["m1"], task["id"], "Endpoints")
        with pytest.raises(ValueError):
            model.reorder_subtasks(users["m1"], task["id"], [sub["id"]])

    def test_delete_cascades_to_written_children(self, seeded_db, model, users, task):
        model.add_subtask(users["m1"], task["id"], "Schema")
        model.add_comment(users["m1"], task["id"], "Started")
        model.delete_task(users["l1"], task["id"])
        assert seeded_db.docs("subtasks") == {}
        assert seeded_db.docs("comments") == {}
        assert [n for n in seeded_db.docs("notifications").values() if n.get("task_id") == task["id"]] == []
