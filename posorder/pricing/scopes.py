"""Promotion scope resolution."""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set, Tuple

from posorder.pricing.categories import Category, normalize_category
from posorder.pricing.types import TARGET_PRECEDENCE, ScopeTarget, TargetType


@dataclass(frozen=True)
class LineIdentity:
    """What a cart line is, at every scope level."""
    product_id: str
    category: Category
    variant_id: Optional[str] = None
    subcategory_id: Optional[str] = None

    def id_at(self, level: TargetType) -> Optional[str]:
        if level is TargetType.VARIANT:
            return self.variant_id
        if level is TargetType.PRODUCT:
            return self.product_id
        if level is TargetType.SUBCATEGORY:
            return self.subcategory_id
        # UNKNOWN never matches a category row, include or exclude
        if self.category is Category.UNKNOWN:
            return None
        return self.category.value


class ScopeResolver:
    """
    Decides line eligibility for one promotion.

    Levels are walked from most to least specific (variant, product,
    subcategory, category). The first level with a row naming the line decides;
    an exclude beats an include at the same level. A line named at no level is
    not eligible, and a promotion without any include row has no eligible
    lines at all.
    """

    def __init__(self, targets: Iterable[ScopeTarget]):
        self._rows: Dict[TargetType, Tuple[Set[str], Set[str]]] = {
            level: (set(), set()) for level in TARGET_PRECEDENCE
        }
        self.include_count = 0
        for target in targets:
            target_id = target.target_id
            if target.target_type is TargetType.CATEGORY:
                category = normalize_category(target_id)
                if category is Category.UNKNOWN:
                    target_id = None
                else:
                    target_id = category.value
            included, excluded = self._rows[target.target_type]
            if target.included:
                self.include_count += 1
            if target_id is None:
                continue
            (included if target.included else excluded).add(target_id)

    @property
    def has_include(self) -> bool:
        return self.include_count > 0

    def verdict_at(self, level: TargetType, identity: LineIdentity) -> Optional[bool]:
        """True/False when a row at this level names the line, else None."""
        line_id = identity.id_at(level)
        if line_id is None:
            return None
        included, excluded = self._rows[level]
        if line_id in excluded:
            return False
        if line_id in included:
            return True
        return None

    def deciding_level(self, identity: LineIdentity) -> Optional[TargetType]:
        if not self.has_include:
            return None
        for level in TARGET_PRECEDENCE:
            if self.verdict_at(level, identity) is not None:
                return level
        return None

    def is_eligible(self, identity: LineIdentity) -> bool:
        level = self.deciding_level(identity)
        if level is None:
            return False
        return bool(self.verdict_at(level, identity))
