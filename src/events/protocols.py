import typing as t
from dataclasses import dataclass


@dataclass(frozen=True)
class RosterEntry:
    roll_number: str
    name: str
    already_registered: bool


class PartnerRoster(t.Protocol):
    """Source of the partner institution's valid roll numbers."""

    def lookup(self, roll_number: str) -> RosterEntry | None:
        """Return the roster entry, or None if the roll number is not on the roster."""
        ...

    def mark_registered(self, roll_number: str) -> None:
        """Record that the roll number has been used for a registration."""
        ...
