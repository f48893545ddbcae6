"""Tests for project reference loading."""

import json
from unittest.mock import patch
from uuid import uuid4

import pytest

from daybook.core.reference_data import load_reference_data
from daybook.core.schemas_assistant import AssistantMode

USER_ID = uuid4()


@pytest.mark.asyncio
async def test_projects_rendered_for_action_mode():
    projects = [{"id": "p1", "title": "Home"}, {"id": "p2", "title": "Work"}]
    with patch("daybook.core.reference_data.list_project_refs", return_value=projects) as list_refs:
        fragment = await load_reference_data(USER_ID, AssistantMode.ACTION)

    prefix = "Available Projects (use these IDs): "
    assert fragment.startswith(prefix)
    assert json.loads(fragment[len(prefix):]) == projects
    list_refs.assert_called_once_with(USER_ID)


@pytest.mark.asyncio
async def test_auto_mode_also_loads():
    with patch(
        "daybook.core.reference_data.list_project_refs",
        return_value=[{"id": "p1", "title": "Home"}],
    ):
        assert await load_reference_data(USER_ID, AssistantMode.AUTO) != ""


@pytest.mark.asyncio
async def test_memory_mode_skips_lookup():
    with patch("daybook.core.reference_data.list_project_refs") as list_refs:
        assert await load_reference_data(USER_ID, AssistantMode.MEMORY) == ""
    list_refs.assert_not_called()


@pytest.mark.asyncio
async def test_no_projects_yields_empty_fragment():
    with patch("daybook.core.reference_data.list_project_refs", return_value=[]):
        assert await load_reference_data(USER_ID, AssistantMode.ACTION) == ""


@pytest.mark.asyncio
async def test_read_failure_yields_empty_fragment():
    with patch(
        "daybook.core.reference_data.list_project_refs",
        side_effect=RuntimeError("connection reset"),
    ):
        assert await load_reference_data(USER_ID, AssistantMode.ACTION) == ""
