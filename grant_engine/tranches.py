"""
Milestone schedule and tranche accounting
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import InvalidAmount, ScheduleInvariantError
from .models import finite_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Milestone:
    """One funding phase of a grant"""
    name: str
    percent_of_total: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "percent_of_total": str(self.percent_of_total)}


class MilestoneSchedule:
    """
    Ordered milestones whose percentages sum to exactly 100

    Validated once at construction; a violated schedule cannot be built.
    """

    def __init__(self, milestones: Iterable[Any]):
        parsed: List[Milestone] = []
        for index, item in enumerate(milestones, start=1):
            if isinstance(item, Milestone):
                name, percent = item.name, item.percent_of_total
            else:
                try:
                    name, percent = item
                except (TypeError, ValueError):
                    raise ScheduleInvariantError(
                        f"Milestone {index} must be a Milestone or a (name, percent) pair (got {item!r})",
                        {"index": index}
                    )
            parsed.append(Milestone(name=str(name), percent_of_total=_percent(index, percent)))

        if not parsed:
            raise ScheduleInvariantError("Milestone schedule must not be empty")

        total = sum((m.percent_of_total for m in parsed), Decimal("0"))
        if total != HUNDRED:
            raise ScheduleInvariantError(
                f"Milestone percentages must sum to 100 (got {total})",
                {"total": str(total)}
            )

        self._milestones: Tuple[Milestone, ...] = tuple(parsed)

    @classmethod
    def default(cls) -> 'MilestoneSchedule':
        """Four-phase reference schedule"""
        return cls([
            ("Phase 1: Proof of Concept", 25),
            ("Phase 2: Alpha Launch & Testnet", 30),
            ("Phase 3: Community Feedback Loop", 25),
            ("Phase 4: Mainnet Launch & Review", 20),
        ])

    @property
    def milestones(self) -> Tuple[Milestone, ...]:
        return self._milestones

    def __len__(self) -> int:
        return len(self._milestones)

    def __iter__(self):
        return iter(self._milestones)

    def __getitem__(self, index: int) -> Milestone:
        return self._milestones[index]

    def cumulative_percent(self, count: int) -> Decimal:
        """Sum of the first `count` milestone percentages"""
        if not 0 <= count <= len(self):
            raise ValueError(f"Milestone count must be in [0, {len(self)}] (got {count})")
        return sum((m.percent_of_total for m in self._milestones[:count]), Decimal("0"))

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._milestones]


def _percent(index: int, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ScheduleInvariantError(f"Milestone {index} percentage must be numeric")
    try:
        percent = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ScheduleInvariantError(f"Milestone {index} percentage must be numeric (got {value!r})")
    if not percent.is_finite() or percent <= 0:
        raise ScheduleInvariantError(
            f"Milestone {index} percentage must be positive (got {value!r})",
            {"index": index}
        )
    return percent


class TrancheLedger:
    """Released and remaining funds for a proposal's completed milestones"""

    def __init__(
        self,
        schedule: MilestoneSchedule,
        requested_amount_usd: Any,
        completed_milestones: int = 0
    ):
        """
        Raises:
            InvalidAmount: If the requested amount is negative or not finite
            ValueError: If the milestone count is outside [0, N]
        """
        if not 0 <= completed_milestones <= len(schedule):
            raise ValueError(
                f"Completed milestones must be in [0, {len(schedule)}] (got {completed_milestones})"
            )
        self.schedule = schedule
        amount = finite_decimal(requested_amount_usd, InvalidAmount)
        if amount < 0:
            raise InvalidAmount(requested_amount_usd)
        self.requested_amount_usd = amount
        self.completed_milestones = completed_milestones

    def released_after(self, count: int) -> Decimal:
        """Total released once `count` milestones are complete"""
        if count == len(self.schedule):
            return self.requested_amount_usd
        return self.requested_amount_usd * self.schedule.cumulative_percent(count) / HUNDRED

    @property
    def released_amount(self) -> Decimal:
        return self.released_after(self.completed_milestones)

    @property
    def remaining_amount(self) -> Decimal:
        return self.requested_amount_usd - self.released_amount

    @property
    def is_fully_released(self) -> bool:
        return self.completed_milestones == len(self.schedule)

    @property
    def next_milestone(self) -> Optional[Milestone]:
        """Milestone currently in flight, if any"""
        if self.is_fully_released:
            return None
        return self.schedule[self.completed_milestones]

    def tranche_amount(self, index: int) -> Decimal:
        """
        Amount released by milestone `index` (1-based)

        Computed as a difference of cumulative totals so the tranches add up
        to the requested amount exactly.
        """
        if not 1 <= index <= len(self.schedule):
            raise ValueError(f"Milestone index must be in [1, {len(self.schedule)}] (got {index})")
        return self.released_after(index) - self.released_after(index - 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested_amount_usd": str(self.requested_amount_usd),
            "completed_milestones": self.completed_milestones,
            "total_milestones": len(self.schedule),
            "released_amount": str(self.released_amount),
            "remaining_amount": str(self.remaining_amount),
        }
