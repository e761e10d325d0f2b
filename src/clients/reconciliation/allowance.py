"""Per-property allowance and cohort tables."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .schemas import Cohort, Property

# Street names whose water bills end in even / odd months
EVEN_COHORT_NAMES = ("Llull", "Blasco", "Torrent", "Bisbe", "Aribau", "Comte", "Borrell")
ODD_COHORT_NAMES = ("Padilla", "Sardenya", "Valencia", "Sant Joan", "St Joan", "Providencia")


class AllowancePolicy(BaseModel):
    """Monthly allowance in euros: name overrides first, then a step function of room count."""

    overrides: dict[str, Decimal] = Field(default_factory=lambda: {"padilla 1-3": Decimal("150")})
    one_room_or_less: Decimal = Decimal("50")
    two_rooms: Decimal = Decimal("70")
    three_rooms: Decimal = Decimal("100")
    four_rooms_or_more: Decimal = Decimal("130")
    default: Decimal = Decimal("70")

    def lookup(self, prop: Property) -> Decimal:
        name = prop.name.lower()
        for fragment, amount in self.overrides.items():
            if fragment.lower() in name:
                return amount
        rooms = prop.room_count
        if rooms is None:
            return self.default
        if rooms <= 1:
            return self.one_room_or_less
        if rooms == 2:
            return self.two_rooms
        if rooms == 3:
            return self.three_rooms
        return self.four_rooms_or_more


DEFAULT_POLICY = AllowancePolicy()


def lookup_allowance(prop: Property, policy: Optional[AllowancePolicy] = None) -> Decimal:
    return (policy or DEFAULT_POLICY).lookup(prop)


def property_cohort(name: str) -> Optional[Cohort]:
    """Cohort a property belongs to by name (case-insensitive substring); None if unlisted."""
    lowered = (name or "").lower()
    if any(n.lower() in lowered for n in EVEN_COHORT_NAMES):
        return Cohort.EVEN
    if any(n.lower() in lowered for n in ODD_COHORT_NAMES):
        return Cohort.ODD
    return None
