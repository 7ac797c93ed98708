"""Fee computation.

Everything here is pure: the same cohort, year and selection always produce the same
lines and total. Amounts are attributed per line so the persisted registrations add up
to exactly what the participant owes; a package fee sits on one line only.
"""

import abc
import typing as t
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings

from events.models import Cohort, Event

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class FeeSchedule:
    general_event_package: Decimal
    general_workshop: Decimal
    partner_year_one_event_package: Decimal
    partner_workshop: Decimal

    @classmethod
    def from_settings(cls) -> "FeeSchedule":
        return cls(
            general_event_package=Decimal(settings.GENERAL_EVENT_PACKAGE_FEE),
            general_workshop=Decimal(settings.GENERAL_WORKSHOP_FEE),
            partner_year_one_event_package=Decimal(settings.PARTNER_YEAR_ONE_EVENT_PACKAGE_FEE),
            partner_workshop=Decimal(settings.PARTNER_WORKSHOP_FEE),
        )

    def list_price(self, event: Event) -> Decimal:
        """What the general cohort is charged for this event selected on its own."""
        return self.general_workshop if event.is_workshop else self.general_event_package


@dataclass(frozen=True)
class LineItem:
    event_id: uuid.UUID
    is_workshop: bool
    amount: Decimal
    # free lines are confirmed on the spot, there is nothing to pay for them
    is_free: bool = False


@dataclass(frozen=True)
class Quote:
    lines: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    def line_for(self, event_id: uuid.UUID) -> LineItem:
        return next(line for line in self.lines if line.event_id == event_id)


class PricingPolicy(abc.ABC):
    """Prices one cohort's selection of workshops and events."""

    def __init__(self, fees: FeeSchedule) -> None:
        self.fees = fees

    def quote(self, year: int, workshop_ids: t.Sequence[uuid.UUID], event_ids: t.Sequence[uuid.UUID]) -> Quote:
        """Price workshops first, then events, in the order they were selected."""
        workshop_lines = [
            LineItem(event_id=workshop_id, is_workshop=True, amount=self.workshop_fee(year))
            for workshop_id in workshop_ids
        ]
        return Quote(lines=(*workshop_lines, *self.event_lines(year, event_ids)))

    @abc.abstractmethod
    def workshop_fee(self, year: int) -> Decimal: ...

    @abc.abstractmethod
    def event_lines(self, year: int, event_ids: t.Sequence[uuid.UUID]) -> list[LineItem]: ...

    @staticmethod
    def package(event_ids: t.Sequence[uuid.UUID], fee: Decimal) -> list[LineItem]:
        """The first event carries the whole package fee, the others are recorded at zero."""
        return [
            LineItem(event_id=event_id, is_workshop=False, amount=fee if index == 0 else ZERO)
            for index, event_id in enumerate(event_ids)
        ]


class FlatPackagePolicy(PricingPolicy):
    """General cohort: one package fee for all events, a flat fee per workshop."""

    def workshop_fee(self, year: int) -> Decimal:
        return self.fees.general_workshop

    def event_lines(self, year: int, event_ids: t.Sequence[uuid.UUID]) -> list[LineItem]:
        return self.package(event_ids, self.fees.general_event_package)


class CohortTieredPolicy(PricingPolicy):
    """Partner cohort: first years pay a package for events, later years get events free.

    Workshops cost the discounted partner rate in every year.
    """

    def workshop_fee(self, year: int) -> Decimal:
        return self.fees.partner_workshop

    def event_lines(self, year: int, event_ids: t.Sequence[uuid.UUID]) -> list[LineItem]:
        if year == 1:
            return self.package(event_ids, self.fees.partner_year_one_event_package)
        return [LineItem(event_id=event_id, is_workshop=False, amount=ZERO, is_free=True) for event_id in event_ids]


POLICIES: dict[Cohort, type[PricingPolicy]] = {
    Cohort.GENERAL: FlatPackagePolicy,
    Cohort.PARTNER: CohortTieredPolicy,
}


def policy_for(cohort: Cohort, fees: FeeSchedule | None = None) -> PricingPolicy:
    return POLICIES[Cohort(cohort)](fees or FeeSchedule.from_settings())


def quote(
    cohort: Cohort,
    year: int,
    workshop_ids: t.Sequence[uuid.UUID],
    event_ids: t.Sequence[uuid.UUID],
    fees: FeeSchedule | None = None,
) -> Quote:
    """Price a selection for a cohort and year of study."""
    return policy_for(cohort, fees).quote(year, workshop_ids, event_ids)
