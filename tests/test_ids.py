"""Tests for task id generation."""

import uuid

from tasker.tasks.ids import new_task_id


def test_is_uuid_version_7():
    value = uuid.UUID(new_task_id())
    assert value.version == 7
    assert value.variant == uuid.RFC_4122


def test_embeds_timestamp():
    value = uuid.UUID(new_task_id(timestamp_ms=1_700_000_000_000))
    assert value.int >> 80 == 1_700_000_000_000


def test_sorts_by_creation_time():
    earlier = new_task_id(timestamp_ms=1_000)
    later = new_task_id(timestamp_ms=2_000)
    assert earlier < later


def test_unique():
    assert len({new_task_id() for _ in range(1_000)}) == 1_000
