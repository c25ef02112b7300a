"""Value types shared by the pricing engine."""
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union


class SizeKey(str, enum.Enum):
    """Closed set of size keys a line can be ordered at."""
    STD = "STD"
    SMALL = "SIZE_PHE"
    LARGE = "SIZE_LA"


SIZE_KEYS = frozenset(k.value for k in SizeKey)


class PromotionKind(str, enum.Enum):
    DISCOUNT = "DISCOUNT"
    RULE = "RULE"


class TargetType(str, enum.Enum):
    """Scope levels, most specific first."""
    VARIANT = "VARIANT"
    PRODUCT = "PRODUCT"
    SUBCATEGORY = "SUBCATEGORY"
    CATEGORY = "CATEGORY"


TARGET_PRECEDENCE = (TargetType.VARIANT, TargetType.PRODUCT, TargetType.SUBCATEGORY, TargetType.CATEGORY)


class ApplyTo(str, enum.Enum):
    ELIGIBLE_LINES = "ELIGIBLE_LINES"
    ORDER_TOTAL = "ORDER_TOTAL"


class Allocation(str, enum.Enum):
    PROPORTIONAL = "PROPORTIONAL"
    EQUAL = "EQUAL"


class AdjustmentKind(str, enum.Enum):
    PERCENT_OFF = "PERCENT_OFF"
    AMOUNT_OFF = "AMOUNT_OFF"
    AMOUNT_OFF_PER_ITEM = "AMOUNT_OFF_PER_ITEM"
    FREE_ITEM = "FREE_ITEM"
    FREE_UPSIZE = "FREE_UPSIZE"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineItem:
    """Validated cart line. line_id is the caller's stable key."""
    line_id: str
    product_id: str
    qty: int
    size_key: str
    options: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProductInfo:
    id: str
    category: Optional[str] = None
    subcategory_id: Optional[str] = None
    name: str = ''


@dataclass(frozen=True)
class VariantInfo:
    id: str
    product_id: str
    size_key: str


@dataclass(frozen=True)
class PromotionInfo:
    code: str
    kind: PromotionKind = PromotionKind.RULE
    percent_off: Optional[Decimal] = None
    min_qty: Optional[int] = None
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    def is_admissible(self, now: datetime) -> bool:
        """Active and inside the validity window (bounds inclusive)."""
        if not self.is_active:
            return False
        now = as_utc(now)
        start, end = as_utc(self.valid_from), as_utc(self.valid_until)
        if start is not None and start > now:
            return False
        if end is not None and end < now:
            return False
        return True


@dataclass(frozen=True)
class PricingInputs:
    """
    Everything a quote needs, fetched before the engine runs.

    scope_rows and rule_rows stay raw mappings: the engine parses them and
    reports malformed records instead of failing the quote.
    """
    products: Mapping[str, ProductInfo] = field(default_factory=dict)
    variants: Sequence[VariantInfo] = ()
    current_prices: Mapping[str, Any] = field(default_factory=dict)
    legacy_prices: Mapping[Tuple[str, str], Any] = field(default_factory=dict)
    promotion: Optional[PromotionInfo] = None
    scope_rows: Sequence[Mapping[str, Any]] = ()
    rule_rows: Sequence[Mapping[str, Any]] = ()


# ---------------------------------------------------------------------------
# Promotion records (closed tagged types)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScopeTarget:
    target_type: TargetType
    target_id: str
    included: bool = True


@dataclass(frozen=True)
class Conditions:
    min_order_value: Optional[int] = None
    min_qty: Optional[int] = None
    min_eligible_qty: Optional[int] = None


@dataclass(frozen=True)
class PercentOff:
    percent: Decimal
    apply_to: ApplyTo = ApplyTo.ELIGIBLE_LINES
    type = 'PERCENT_OFF'


@dataclass(frozen=True)
class AmountOff:
    amount: int
    apply_to: ApplyTo = ApplyTo.ELIGIBLE_LINES
    allocation: Allocation = Allocation.PROPORTIONAL
    type = 'AMOUNT_OFF'


@dataclass(frozen=True)
class AmountOffPerItem:
    amount: int
    max_items: Optional[int] = None
    type = 'AMOUNT_OFF_PER_ITEM'


@dataclass(frozen=True)
class FreeItem:
    variant_id: str
    qty: int = 1
    max_per_order: int = 1
    type = 'FREE_ITEM'


Action = Union[PercentOff, AmountOff, AmountOffPerItem, FreeItem]


@dataclass(frozen=True)
class Rule:
    id: str
    rule_order: int
    conditions: Conditions
    actions: Tuple[Action, ...]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Adjustment:
    kind: AdjustmentKind
    amount: int
    details: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.kind.value, 'amount': self.amount, 'details': self.details}


@dataclass
class LineResult:
    """
    Priced line. Mutable while the engine works on it; the finished
    QuoteResult is never modified again.
    """
    line_id: str
    product_id: str
    qty: int
    display_size_key: str
    charged_size_key: str
    unit_price_before: int = 0
    unit_price_after: int = 0
    line_total_before: int = 0
    line_total_after: int = 0
    adjustments: List[Adjustment] = field(default_factory=list)
    missing_price: bool = False
    is_free_item: bool = False
    debug: Optional[Dict[str, Any]] = None

    @property
    def discount(self) -> int:
        return self.line_total_before - self.line_total_after

    @property
    def is_priced(self) -> bool:
        return not self.missing_price

    def to_dict(self) -> Dict[str, Any]:
        rv = {
            'line_id': self.line_id,
            'product_id': self.product_id,
            'qty': self.qty,
            'display_price_key': self.display_size_key,
            'charged_price_key': self.charged_size_key,
            'unit_price_before': self.unit_price_before,
            'unit_price_after': self.unit_price_after,
            'line_total_before': self.line_total_before,
            'line_total_after': self.line_total_after,
            'adjustments': [a.to_dict() for a in self.adjustments],
            'missing_price': self.missing_price,
            'is_free_item': self.is_free_item,
        }
        if self.debug is not None:
            rv['debug'] = dict(self.debug)
        return rv


@dataclass(frozen=True)
class Totals:
    subtotal_before: int
    discount_total: int
    grand_total: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'subtotal_before': self.subtotal_before,
            'discount_total': self.discount_total,
            'grand_total': self.grand_total,
        }


@dataclass
class Diagnostics:
    """Support/debugging facts; never authoritative for billing."""
    promotion_code: Optional[str] = None
    promotion_applied: bool = False
    free_upsize_applied: bool = False
    discount_percent: Optional[Decimal] = None
    drink_qty: int = 0
    eligible_qty: int = 0
    rules_applied: List[str] = field(default_factory=list)
    conditions_met: Dict[str, bool] = field(default_factory=dict)
    unallocated_discount: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'promotion_code': self.promotion_code,
            'promotion_applied': self.promotion_applied,
            'free_upsize_applied': self.free_upsize_applied,
            'discount_percent': float(self.discount_percent) if self.discount_percent is not None else None,
            'drink_qty': self.drink_qty,
            'eligible_qty': self.eligible_qty,
            'rules_applied': list(self.rules_applied),
            'conditions_met': dict(self.conditions_met),
            'unallocated_discount': self.unallocated_discount,
            'warnings': list(self.warnings),
        }


@dataclass(frozen=True)
class QuoteResult:
    lines: Tuple[LineResult, ...]
    free_items: Tuple[LineResult, ...]
    totals: Totals
    diagnostics: Diagnostics

    @property
    def missing_price_line_ids(self) -> List[str]:
        return [line.line_id for line in self.lines if line.missing_price]

    @property
    def has_missing_price(self) -> bool:
        return any(line.missing_price for line in self.lines)

    def line(self, line_id: str) -> LineResult:
        for candidate in self.lines:
            if candidate.line_id == line_id:
                return candidate
        raise KeyError(line_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [line.to_dict() for line in self.lines],
            'free_items': [line.to_dict() for line in self.free_items],
            'totals': self.totals.to_dict(),
            'meta': self.diagnostics.to_dict(),
        }
