import typing as t
from unittest.mock import patch

import pytest
from django.core.cache import cache

from events.models import Participant
from events.service import cache_service

pytestmark = pytest.mark.django_db


def test_invalidate_drops_status_and_stats(participant: Participant) -> None:
    cache.set(cache_service.participant_status_key(participant.email), {"x": 1})
    cache.set(cache_service.participant_status_by_id_key(participant.pk), {"x": 1})
    cache.set(cache_service.ADMIN_STATS_KEY, {"x": 1})
    cache.set("unrelated", 1)

    cache_service.invalidate([participant])

    assert cache.get(cache_service.participant_status_key(participant.email)) is None
    assert cache.get(cache_service.participant_status_by_id_key(participant.pk)) is None
    assert cache.get(cache_service.ADMIN_STATS_KEY) is None
    assert cache.get("unrelated") == 1


def test_status_key_ignores_case_and_spaces() -> None:
    assert cache_service.participant_status_key(" Priya@Example.com ") == cache_service.participant_status_key(
        "priya@example.com"
    )


def test_cache_outage_does_not_raise(participant: Participant) -> None:
    with patch.object(cache, "delete_many", side_effect=ConnectionError("cache down")):
        cache_service.invalidate([participant])


def test_invalidation_waits_for_commit(participant: Participant, django_capture_on_commit_callbacks: t.Any) -> None:
    cache.set(cache_service.ADMIN_STATS_KEY, {"x": 1})

    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        cache_service.invalidate_on_commit([participant])
        assert cache.get(cache_service.ADMIN_STATS_KEY) == {"x": 1}

    assert len(callbacks) == 1
    callbacks[0]()
    assert cache.get(cache_service.ADMIN_STATS_KEY) is None
