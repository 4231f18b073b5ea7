from dataclasses import dataclass, field, fields
from decimal import Decimal, localcontext
from functools import total_ordering
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from solders.pubkey import Pubkey

from poolguard.errors import InvalidPoolError

ZERO_ADDRESS = str(Pubkey.default())


@dataclass(frozen=True)
class PoolIdentity:
    """
    Keys of one Raydium AMM v4 pool and the market it trades against.
    Shared read-only with every filter during one analysis.
    """
    pool_id: str
    base_mint: str
    quote_mint: str
    base_vault: str
    quote_vault: str
    lp_mint: str
    market_id: str
    market_bids: str
    market_asks: str
    market_event_queue: str

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not value or not isinstance(value, str):
                raise InvalidPoolError(f"{f.name} is missing")
            try:
                Pubkey.from_string(value)
            except ValueError as e:
                raise InvalidPoolError(f"{f.name} is not a valid address: {value}") from e
            if value == ZERO_ADDRESS:
                raise InvalidPoolError(f"{f.name} is the zero address")


@total_ordering
@dataclass(frozen=True, eq=False)
class Amount:
    """
    Token quantity in raw units with its decimal precision.
    Comparisons are exact integer arithmetic, also across different precisions.
    """
    raw: int
    decimals: int

    def __post_init__(self):
        if self.raw < 0:
            raise ValueError(f"Amount cannot be negative: {self.raw}")
        if self.decimals < 0:
            raise ValueError(f"Decimals cannot be negative: {self.decimals}")

    @classmethod
    def from_ui(cls, value: Union[Decimal, str, int], decimals: int) -> "Amount":
        with localcontext() as ctx:
            ctx.prec = 80
            scaled = Decimal(str(value)).scaleb(decimals)
            if scaled != scaled.to_integral_value():
                raise ValueError(f"{value} has more than {decimals} decimals")
            return cls(int(scaled), decimals)

    def to_decimal(self) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = 80
            return Decimal(self.raw).scaleb(-self.decimals)

    def is_zero(self) -> bool:
        return self.raw == 0

    def _aligned(self, other: "Amount") -> Tuple[int, int]:
        precision = max(self.decimals, other.decimals)
        return (
            self.raw * 10 ** (precision - self.decimals),
            other.raw * 10 ** (precision - other.decimals),
        )

    def __eq__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        mine, theirs = self._aligned(other)
        return mine == theirs

    def __lt__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        mine, theirs = self._aligned(other)
        return mine < theirs

    def __hash__(self):
        return hash(self.to_decimal().normalize())

    def __str__(self):
        value = self.to_decimal()
        return format(value.normalize() if value else Decimal(0), "f")


@dataclass(frozen=True)
class FilterResult:
    ok: bool
    message: str
    metrics: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterReport:
    name: str
    passed: bool
    details: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def __hash__(self):
        # details may hold unhashable metric values
        return hash((self.name, self.passed, self.details.get("message")))

    @classmethod
    def from_result(cls, name: str, result: FilterResult) -> "FilterReport":
        return cls(
            name=name,
            passed=result.ok,
            details={"message": result.message or "No message provided", **result.metrics},
        )


@dataclass(frozen=True)
class AnalysisVerdict:
    """Reports in configuration order. `all_passed` is derived, never stored."""
    pool_id: str
    reports: Tuple[FilterReport, ...]

    def __post_init__(self):
        object.__setattr__(self, "reports", tuple(self.reports))
        names = [r.name for r in self.reports]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate report names: {names}")

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.reports)

    @property
    def failed(self) -> Tuple[FilterReport, ...]:
        return tuple(r for r in self.reports if not r.passed)

    @property
    def first_failure(self) -> Optional[FilterReport]:
        failed = self.failed
        return failed[0] if failed else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "all_passed": self.all_passed,
            "reports": [
                {"name": r.name, "passed": r.passed, "details": dict(r.details)}
                for r in self.reports
            ],
        }
