# tests/test_tracking_service.py
"""Unit tests for visitor tracking and the heatmap entry point. Firestore is mocked."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, AsyncMock

from factories import make_step_doc
from portaria.errors import BackendUnavailable
from portaria.services.tracking_service import TrackingService

NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)

USER_DOC = {"id": "uid-1", "display_name": "ROSEMEIRE COSTA", "email": "rose@example.com"}


def token_doc(token_id, **fields):
    doc = {"id": token_id, "name": f"Tag {token_id}", "active": True, "users_assigned": ["users/uid-1"]}
    doc.update(fields)
    return doc


def make_store(users=None, tokens=None):
    store = MagicMock()
    store.find_users_by_name = AsyncMock(return_value=users if users is not None else [USER_DOC])
    store.find_tokens_by_uid = AsyncMock(return_value=tokens or [])
    store.find_steps_by_token = AsyncMock(return_value=[])
    store.scan_steps = AsyncMock(return_value=[])
    store.steps_between = AsyncMock(return_value=[])
    return store


class TestTrackVisitor:
    @pytest.mark.asyncio
    async def test_unknown_visitor_is_empty(self):
        service = TrackingService(make_store(users=[]))

        result = await service.track_visitor("NINGUEM")

        assert result.visitor is None
        assert result.tokens == []
        assert result.total_tokens == 0

    @pytest.mark.asyncio
    async def test_tokens_with_steps(self):
        store = make_store(tokens=[token_doc("T1"), token_doc("T2")])

        async def steps_for(token_id):
            if token_id == "T1":
                return [make_step_doc("s1", token_ref="tokens/T1"), make_step_doc("s2", token_ref="tokens/T1")]
            return []
        store.find_steps_by_token = AsyncMock(side_effect=steps_for)

        result = await TrackingService(store).track_visitor("rosemeire")

        assert result.visitor.uid == "uid-1"
        assert result.visitor.display_name == "ROSEMEIRE COSTA"
        assert [t.id for t in result.tokens] == ["T1", "T2"]
        assert result.tokens[0].resolved_via == "direct"
        assert result.tokens[0].token_ref == "/tokens/T1"
        assert result.tokens[1].resolved_via == "none"
        assert result.steps_count == 2
        store.find_tokens_by_uid.assert_awaited_once_with("uid-1")

    @pytest.mark.asyncio
    async def test_one_failing_token_does_not_affect_others(self):
        store = make_store(tokens=[token_doc("T1"), token_doc("T2")])

        async def steps_for(token_id):
            if token_id == "T1":
                raise BackendUnavailable("deadline exceeded")
            return [make_step_doc("s9", token_ref="tokens/T2")]
        store.find_steps_by_token = AsyncMock(side_effect=steps_for)

        result = await TrackingService(store).track_visitor("ROSEMEIRE")

        t1, t2 = result.tokens
        assert t1.steps == [] and t1.resolved_via == "none"
        assert [s.id for s in t2.steps] == ["s9"]
        assert result.steps_count == 1

    @pytest.mark.asyncio
    async def test_user_lookup_failure_propagates(self):
        store = make_store()
        store.find_users_by_name = AsyncMock(side_effect=BackendUnavailable("down"))

        with pytest.raises(BackendUnavailable):
            await TrackingService(store).track_visitor("ROSEMEIRE")

    @pytest.mark.asyncio
    async def test_many_visitors_isolated(self):
        store = make_store()

        async def users_for(name):
            if name == "BROKEN":
                raise BackendUnavailable("down")
            return [USER_DOC]
        store.find_users_by_name = AsyncMock(side_effect=users_for)

        results = await TrackingService(store).track_visitors(["ROSEMEIRE", "BROKEN"])

        assert results[0].visitor.uid == "uid-1"
        assert results[1].visitor is None

    @pytest.mark.asyncio
    async def test_token_steps_accepts_any_shape(self):
        store = make_store()
        store.find_steps_by_token = AsyncMock(return_value=[make_step_doc("s1")])

        result = await TrackingService(store).token_steps({"referencePath": "tokens/ABC123"})

        assert result.token_id == "ABC123"
        assert result.resolved_via == "direct"


class TestHeatmapEntry:
    @pytest.mark.asyncio
    async def test_read_failure_is_degraded_not_raised(self):
        store = make_store()
        store.steps_between = AsyncMock(side_effect=BackendUnavailable("down"))

        result = await TrackingService(store).heatmap(window_days=7, now=NOW)

        assert result.degraded is True
        assert result.points == []
        assert result.date_range.start == result.date_range.end

    @pytest.mark.asyncio
    async def test_window_passed_to_store(self):
        store = make_store()
        store.steps_between = AsyncMock(return_value=[
            make_step_doc(f"s{i}", last_updated="2024-03-09T10:00:00Z") for i in range(5)
        ])

        result = await TrackingService(store).heatmap(window_days=2, now=NOW)

        start, end = store.steps_between.await_args.args
        assert start == datetime(2024, 3, 8, tzinfo=timezone.utc)
        assert end.date() == NOW.date()
        assert result.total_points == 5
        assert len(result.hotspots) == 1
        assert result.hotspots[0].intensity == 3
