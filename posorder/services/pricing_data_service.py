"""
Loads everything a quote needs from the database.

One batched query per table; the results are converted to the engine's plain
input types so the engine never touches the session.
"""
import logging
from typing import Dict, Iterable, List, Optional

from posorder.models import (
    Product, ProductPrice, ProductVariant, ProductVariantPrice,
    Promotion, PromotionRule, PromotionScopeTarget,
)
from posorder.pricing.records import free_item_variant_ids
from posorder.pricing.types import PricingInputs, ProductInfo, PromotionInfo, PromotionKind, VariantInfo

logger = logging.getLogger(__name__)


def _promotion_info(promotion: Promotion) -> PromotionInfo:
    try:
        kind = PromotionKind((promotion.promo_type or '').upper())
    except ValueError:
        logger.warning(f"Promotion {promotion.code} has unknown type {promotion.promo_type!r}, treating as RULE")
        kind = PromotionKind.RULE
    return PromotionInfo(
        code=promotion.code,
        kind=kind,
        percent_off=promotion.percent_off,
        min_qty=promotion.min_qty,
        is_active=bool(promotion.is_active),
        valid_from=promotion.valid_from,
        valid_until=promotion.valid_until,
    )


def _load_variants(session, product_ids: Iterable[str], variant_ids: Iterable[str]):
    """Active variants of the given products plus explicitly referenced ones."""
    product_ids, variant_ids = list(product_ids), list(variant_ids)
    if not product_ids and not variant_ids:
        return [], {}

    query = session.query(ProductVariant, ProductVariantPrice.price_vat_incl).outerjoin(
        ProductVariantPrice, ProductVariantPrice.variant_id == ProductVariant.id
    ).filter(ProductVariant.is_active.is_(True))

    if product_ids and variant_ids:
        query = query.filter(
            ProductVariant.product_id.in_(product_ids) | ProductVariant.id.in_(variant_ids)
        )
    elif product_ids:
        query = query.filter(ProductVariant.product_id.in_(product_ids))
    else:
        query = query.filter(ProductVariant.id.in_(variant_ids))

    variants: List[VariantInfo] = []
    current_prices: Dict[str, object] = {}
    for variant, price in query.order_by(ProductVariant.product_id, ProductVariant.size_key, ProductVariant.id).all():
        variants.append(VariantInfo(id=variant.id, product_id=variant.product_id, size_key=variant.size_key))
        if price is not None:
            current_prices[variant.id] = price
    return variants, current_prices


def load_pricing_inputs(session, product_ids: Iterable[str], promotion_code: Optional[str]) -> PricingInputs:
    """
    Fetch catalog, prices and promotion data for one quote.

    Inactive or unknown products are left out; the engine flags their lines as
    missing a price. The promotion is returned even when inactive so the
    engine owns the admission decision.

    The six table reads are independent but run one after another: they
    share the caller's scoped session, which must not be used from several
    threads at once.
    """
    product_ids = sorted(set(product_ids))

    products: Dict[str, ProductInfo] = {}
    if product_ids:
        rows = session.query(Product).filter(
            Product.id.in_(product_ids),
            Product.is_active.is_(True)
        ).all()
        products = {
            p.id: ProductInfo(id=p.id, category=p.effective_category, subcategory_id=p.subcategory_id, name=p.name)
            for p in rows
        }

    promotion = None
    scope_rows: List[dict] = []
    rule_rows: List[dict] = []
    code = (promotion_code or '').strip()
    if code:
        row = session.query(Promotion).filter(Promotion.code == code).first()
        if row is None:
            logger.info(f"Promotion code {code!r} not found, quoting without promotion")
        else:
            promotion = _promotion_info(row)
            scope_rows = [
                {'id': t.id, 'target_type': t.target_type, 'target_id': t.target_id, 'is_included': t.is_included}
                for t in session.query(PromotionScopeTarget).filter(
                    PromotionScopeTarget.promotion_code == row.code
                ).all()
            ]
            rule_rows = [
                {'id': r.id, 'rule_order': r.rule_order, 'conditions': r.conditions, 'actions': r.actions}
                for r in session.query(PromotionRule).filter(
                    PromotionRule.promotion_code == row.code
                ).order_by(PromotionRule.rule_order, PromotionRule.id).all()
            ]

    known_ids = list(products)
    variants, current_prices = _load_variants(session, known_ids, free_item_variant_ids(rule_rows))

    # Free-item variants can belong to products outside the cart
    price_product_ids = sorted(set(known_ids) | {v.product_id for v in variants})
    legacy_prices = {}
    if price_product_ids:
        for price in session.query(ProductPrice).filter(ProductPrice.product_id.in_(price_product_ids)).all():
            legacy_prices[(price.product_id, price.price_key)] = price.price_vat_incl

    return PricingInputs(
        products=products,
        variants=tuple(variants),
        current_prices=current_prices,
        legacy_prices=legacy_prices,
        promotion=promotion,
        scope_rows=tuple(scope_rows),
        rule_rows=tuple(rule_rows),
    )
