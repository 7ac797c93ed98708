"""Cached read models and their invalidation.

Anything that changes participants, registrations or payments must drop the derived
entries below. Invalidation is scheduled with ``transaction.on_commit`` so a rolled
back transaction leaves the cache alone and a cache outage never fails a commit.
"""

import typing as t
import uuid
from collections.abc import Iterable

import structlog
from django.core.cache import cache
from django.db import transaction

logger = structlog.get_logger(__name__)

ADMIN_STATS_KEY = "admin_stats"


def participant_status_key(email: str) -> str:
    return f"participant_status:email:{email.strip().lower()}"


def participant_status_by_id_key(participant_id: uuid.UUID | str) -> str:
    return f"participant_status:id:{participant_id}"


class _ParticipantLike(t.Protocol):
    pk: t.Any
    email: str


def keys_for(participants: Iterable[_ParticipantLike]) -> list[str]:
    keys = [ADMIN_STATS_KEY]
    for participant in participants:
        keys.append(participant_status_key(participant.email))
        keys.append(participant_status_by_id_key(participant.pk))
    return keys


def invalidate(participants: Iterable[_ParticipantLike] = ()) -> None:
    """Drop the cached status of the given participants and the admin stats right away."""
    keys = keys_for(participants)
    try:
        cache.delete_many(keys)
    except Exception:
        logger.exception("cache_invalidation_failed", keys=len(keys))
        return
    logger.debug("cache_invalidated", keys=len(keys))


def invalidate_on_commit(participants: Iterable[_ParticipantLike] = ()) -> None:
    """Schedule ``invalidate`` for when the current transaction commits."""
    snapshot = list(participants)
    transaction.on_commit(lambda: invalidate(snapshot))
