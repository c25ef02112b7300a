"""
Unit tests for quote orchestration: scenarios and properties.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from posorder.pricing import (
    LineItem, PricingConfig, PricingInputs, ProductInfo, PromotionInfo, PromotionKind,
    VariantInfo, quote_order,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def catalog_inputs(promotion=None, scope_rows=(), rule_rows=()):
    """Milk tea (small/large), coffee and lemonade (small), cake (std) and a legacy-priced topping."""
    products = {
        'tea': ProductInfo(id='tea', category='DRINK', subcategory_id='milk-tea', name='Trà sữa'),
        'coffee': ProductInfo(id='coffee', category='Đồ uống', name='Cà phê'),
        'lemonade': ProductInfo(id='lemonade', category='DRK', name='Nước chanh'),
        'cake': ProductInfo(id='cake', category='Bánh', name='Bánh flan'),
        'jelly': ProductInfo(id='jelly', category='TOPPING', name='Thạch'),
        'mystery': ProductInfo(id='mystery', category=None, name='No category'),
    }
    variants = (
        VariantInfo(id='tea-s', product_id='tea', size_key='SIZE_PHE'),
        VariantInfo(id='tea-l', product_id='tea', size_key='SIZE_LA'),
        VariantInfo(id='coffee-s', product_id='coffee', size_key='SIZE_PHE'),
        VariantInfo(id='lemonade-s', product_id='lemonade', size_key='SIZE_PHE'),
        VariantInfo(id='cake-std', product_id='cake', size_key='STD'),
        VariantInfo(id='mystery-std', product_id='mystery', size_key='STD'),
        VariantInfo(id='gift', product_id='cookie', size_key='STD'),
    )
    current = {
        'tea-s': 30000, 'tea-l': 38000, 'coffee-s': 18000, 'lemonade-s': 20000, 'cake-std': 25000,
        'mystery-std': 10000, 'gift': 12000,
    }
    legacy = {('jelly', 'STD'): Decimal('5000.00'), ('coffee', 'SIZE_LA'): 24000}
    return PricingInputs(
        products=products,
        variants=variants,
        current_prices=current,
        legacy_prices=legacy,
        promotion=promotion,
        scope_rows=tuple(scope_rows),
        rule_rows=tuple(rule_rows),
    )


def rule_promo(code='PROMO'):
    return PromotionInfo(code=code, kind=PromotionKind.RULE)


def scope(target_type, target_id, included=True):
    return {'target_type': target_type, 'target_id': target_id, 'is_included': included}


def rule(rule_id, order, actions, conditions=None):
    return {'id': rule_id, 'rule_order': order, 'conditions': conditions, 'actions': actions}


PERCENT_10 = {'type': 'PERCENT_OFF', 'percent': 10, 'apply_to': 'ELIGIBLE_LINES'}


class TestBasicPricing:
    """Tests for pricing without a promotion."""

    def test_totals_without_promotion(self):
        lines = [LineItem('l1', 'tea', 2, 'SIZE_LA'), LineItem('l2', 'jelly', 3, 'STD')]
        quote = quote_order(lines, catalog_inputs(), now=NOW)
        assert quote.totals.subtotal_before == 2 * 38000 + 3 * 5000
        assert quote.totals.discount_total == 0
        assert quote.totals.grand_total == quote.totals.subtotal_before
        assert not quote.diagnostics.promotion_applied

    def test_missing_price_is_flagged_not_fatal(self):
        lines = [LineItem('l1', 'cake', 1, 'SIZE_LA'), LineItem('l2', 'cake', 1, 'STD')]
        quote = quote_order(lines, catalog_inputs(), now=NOW)
        missing = quote.line('l1')
        assert missing.missing_price
        assert missing.line_total_before == 0
        assert quote.missing_price_line_ids == ['l1']
        assert quote.totals.grand_total == 25000

    def test_unknown_product_is_missing_price(self):
        quote = quote_order([LineItem('l1', 'ghost', 1, 'STD')], catalog_inputs(), now=NOW)
        assert quote.line('l1').missing_price

    def test_duplicate_products_keyed_by_line_id(self):
        lines = [LineItem('a', 'tea', 1, 'SIZE_PHE'), LineItem('b', 'tea', 2, 'SIZE_PHE', {'sugar': '50'})]
        quote = quote_order(lines, catalog_inputs(), now=NOW)
        assert [l.line_id for l in quote.lines] == ['a', 'b']
        assert quote.line('b').line_total_before == 60000

    def test_duplicate_line_ids_rejected(self):
        lines = [LineItem('a', 'tea', 1, 'SIZE_PHE'), LineItem('a', 'cake', 1, 'STD')]
        with pytest.raises(ValueError):
            quote_order(lines, catalog_inputs(), now=NOW)


class TestScenarios:
    """End-to-end pricing scenarios."""

    def test_free_upsize(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=5)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        quote = quote_order([LineItem('l1', 'tea', 5, 'SIZE_PHE')], inputs, now=NOW)

        line = quote.line('l1')
        assert line.display_size_key == 'SIZE_LA'
        assert line.charged_size_key == 'SIZE_PHE'
        assert line.unit_price_after == 30000
        assert [(a.kind.value, a.amount) for a in line.adjustments] == [('FREE_UPSIZE', 8000)]
        assert quote.totals.discount_total == 0
        assert quote.totals.grand_total == 5 * 30000
        assert quote.diagnostics.free_upsize_applied
        assert quote.diagnostics.drink_qty == 5

    def test_free_upsize_below_minimum(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=5)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        quote = quote_order([LineItem('l1', 'tea', 4, 'SIZE_PHE')], inputs, now=NOW)
        assert quote.line('l1').display_size_key == 'SIZE_PHE'
        assert not quote.diagnostics.free_upsize_applied

    def test_free_upsize_counts_every_eligible_drink(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        lines = [LineItem('tea', 'tea', 3, 'SIZE_PHE'), LineItem('coffee', 'coffee', 2, 'SIZE_PHE'),
                 LineItem('cake', 'cake', 1, 'STD')]
        quote = quote_order(lines, inputs, config=PricingConfig(free_upsize_min_qty=5), now=NOW)
        assert quote.line('tea').display_size_key == 'SIZE_LA'
        # small from the current table, large from legacy
        assert quote.line('coffee').adjustments[0].amount == 6000
        assert quote.line('cake').adjustments == []

    def test_free_upsize_code_is_configurable(self):
        promo = PromotionInfo(code='BIG5', kind=PromotionKind.RULE, min_qty=1)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        quote = quote_order([LineItem('l1', 'tea', 1, 'SIZE_PHE')], inputs,
                            config=PricingConfig(free_upsize_code='BIG5'), now=NOW)
        assert quote.diagnostics.free_upsize_applied

    def test_free_upsize_skips_drink_without_large_price(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=5)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        lines = [LineItem('tea', 'tea', 4, 'SIZE_PHE'), LineItem('lemon', 'lemonade', 1, 'SIZE_PHE')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.diagnostics.drink_qty == 5
        assert quote.line('tea').display_size_key == 'SIZE_LA'
        lemon = quote.line('lemon')
        assert lemon.display_size_key == 'SIZE_PHE'
        assert lemon.charged_size_key == 'SIZE_PHE'
        assert lemon.unit_price_after == 20000
        assert lemon.adjustments == []

    def test_free_upsize_ignores_product_excluded_drinks(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=5)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK'), scope('PRODUCT', 'coffee', False)])
        lines = [LineItem('tea', 'tea', 4, 'SIZE_PHE'), LineItem('coffee', 'coffee', 3, 'SIZE_PHE')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.diagnostics.drink_qty == 4
        assert not quote.diagnostics.free_upsize_applied
        assert quote.line('tea').display_size_key == 'SIZE_PHE'
        assert quote.line('coffee').display_size_key == 'SIZE_PHE'

    def test_free_upsize_ignores_variant_excluded_drinks(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=5)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK'), scope('VARIANT', 'tea-s', False)])
        lines = [LineItem('tea', 'tea', 5, 'SIZE_PHE'), LineItem('coffee', 'coffee', 5, 'SIZE_PHE')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.diagnostics.drink_qty == 5
        assert quote.line('tea').display_size_key == 'SIZE_PHE'
        assert quote.line('tea').adjustments == []
        assert quote.line('coffee').display_size_key == 'SIZE_LA'

    def test_free_upsize_zero_min_qty_is_kept(self):
        promo = PromotionInfo(code='FREE_UPSIZE_5', kind=PromotionKind.RULE, min_qty=0)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'DRINK')])
        quote = quote_order([LineItem('l1', 'tea', 1, 'SIZE_PHE')], inputs, now=NOW)
        assert quote.diagnostics.free_upsize_applied
        assert quote.line('l1').display_size_key == 'SIZE_LA'

    def test_amount_off_without_apply_to_stays_on_eligible_lines(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'CAKE')],
                                [rule('r1', 1, [{'type': 'AMOUNT_OFF', 'amount': 5000}])])
        quote = quote_order([LineItem('t1', 'tea', 1, 'SIZE_PHE')], inputs, now=NOW)
        assert quote.diagnostics.eligible_qty == 0
        assert quote.totals.discount_total == 0
        assert quote.line('t1').line_total_after == 30000

    def test_percent_off_on_cake_only(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'CAKE')], [rule('r1', 1, [PERCENT_10])])
        lines = [LineItem('d1', 'coffee', 1, 'SIZE_PHE'), LineItem('d2', 'coffee', 1, 'SIZE_PHE'),
                 LineItem('c1', 'cake', 1, 'STD')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.line('d1').unit_price_after == 18000
        assert quote.line('d2').unit_price_after == 18000
        assert quote.line('c1').unit_price_after == 22500
        assert quote.totals.discount_total == 2500
        assert quote.diagnostics.rules_applied == ['PERCENT_OFF_10']

    def test_zero_scope_rows_means_no_discount(self):
        inputs = catalog_inputs(rule_promo(), [], [rule('r1', 1, [PERCENT_10])])
        lines = [LineItem('d1', 'coffee', 2, 'SIZE_PHE'), LineItem('c1', 'cake', 1, 'STD')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.totals.discount_total == 0
        assert quote.diagnostics.eligible_qty == 0

    def test_amount_off_proportional(self):
        action = {'type': 'AMOUNT_OFF', 'amount': 20000, 'apply_to': 'ORDER_TOTAL', 'allocation': 'PROPORTIONAL'}
        scopes = [scope('CATEGORY', 'DRINK'), scope('CATEGORY', 'TOPPING')]
        inputs = catalog_inputs(rule_promo(), scopes, [rule('r1', 1, [action])])
        lines = [LineItem('a', 'tea', 1, 'SIZE_PHE'), LineItem('b', 'jelly', 14, 'STD')]
        quote = quote_order(lines, inputs, now=NOW)
        assert quote.line('a').discount == 6000
        assert quote.line('b').discount == 14000
        assert quote.totals.discount_total == 20000


class TestRules:
    """Tests for rule ordering, conditions and stacking."""

    def test_rules_stack_in_order(self):
        rules = [
            rule('second', 2, [{'type': 'AMOUNT_OFF', 'amount': 2500, 'apply_to': 'ELIGIBLE_LINES'}]),
            rule('first', 1, [PERCENT_10]),
        ]
        inputs = catalog_inputs(rule_promo(), [scope('PRODUCT', 'cake')], rules)
        quote = quote_order([LineItem('c1', 'cake', 1, 'STD')], inputs, now=NOW)
        # 25000 -10% = 22500, then -2500
        assert quote.line('c1').line_total_after == 20000
        assert quote.diagnostics.rules_applied == ['PERCENT_OFF_10', 'AMOUNT_OFF_2500']

    def test_conditions_see_prices_after_earlier_rules(self):
        rules = [
            rule('r1', 1, [PERCENT_10]),
            rule('r2', 2, [{'type': 'AMOUNT_OFF', 'amount': 1000}], {'min_order_value': 25000}),
        ]
        inputs = catalog_inputs(rule_promo(), [scope('PRODUCT', 'cake')], rules)
        quote = quote_order([LineItem('c1', 'cake', 1, 'STD')], inputs, now=NOW)
        assert quote.line('c1').line_total_after == 22500
        assert quote.diagnostics.conditions_met == {'r2:min_order_value_25000': False}

    def test_tiered_min_eligible_qty(self):
        rules = [
            rule('tier1', 1, [{'type': 'AMOUNT_OFF_PER_ITEM', 'amount': 2000}], {'min_eligible_qty': 2}),
            rule('tier2', 2, [{'type': 'AMOUNT_OFF_PER_ITEM', 'amount': 1000}], {'min_eligible_qty': 4}),
        ]
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'DRINK')], rules)
        small = quote_order([LineItem('t', 'tea', 2, 'SIZE_PHE')], inputs, now=NOW)
        large = quote_order([LineItem('t', 'tea', 4, 'SIZE_PHE')], inputs, now=NOW)
        assert small.totals.discount_total == 4000
        assert large.totals.discount_total == 4 * 3000

    def test_free_item_added_once(self):
        action = {'type': 'FREE_ITEM', 'variant_id': 'gift', 'qty': 5, 'max_per_order': 1}
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'DRINK')],
                                [rule('r1', 1, [action], {'min_eligible_qty': 2})])
        quote = quote_order([LineItem('t', 'tea', 6, 'SIZE_PHE')], inputs, now=NOW)
        assert len(quote.free_items) == 1
        gift = quote.free_items[0]
        assert gift.line_id == 'free:r1:0'
        assert gift.qty == 1
        assert quote.totals.subtotal_before == 6 * 30000 + 12000
        assert quote.totals.discount_total == 12000
        assert quote.totals.grand_total == 6 * 30000

    def test_malformed_records_are_skipped_with_warnings(self):
        scopes = [scope('BRAND', 'x'), scope('CATEGORY', 'CAKE')]
        rules = [rule('r1', 1, [{'type': 'TELEPORT'}, PERCENT_10])]
        inputs = catalog_inputs(rule_promo(), scopes, rules)
        quote = quote_order([LineItem('c1', 'cake', 1, 'STD')], inputs, now=NOW)
        assert quote.line('c1').unit_price_after == 22500
        assert len(quote.diagnostics.warnings) == 2

    def test_discount_kind_uses_percent_off(self):
        promo = PromotionInfo(code='SALE', kind=PromotionKind.DISCOUNT, percent_off=Decimal('20'))
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'CAKE')])
        quote = quote_order([LineItem('c1', 'cake', 2, 'STD')], inputs, now=NOW)
        assert quote.totals.discount_total == 10000
        assert quote.diagnostics.discount_percent == Decimal('20')

    def test_missing_price_lines_never_eligible(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'CAKE')], [rule('r1', 1, [PERCENT_10])])
        quote = quote_order([LineItem('c1', 'cake', 1, 'SIZE_LA')], inputs, now=NOW)
        assert quote.totals.discount_total == 0
        assert quote.diagnostics.eligible_qty == 0


class TestPromotionAdmission:
    """Tests for active flag and validity window."""

    @pytest.mark.parametrize('promo', [
        PromotionInfo(code='P', is_active=False),
        PromotionInfo(code='P', valid_from=NOW + timedelta(days=1)),
        PromotionInfo(code='P', valid_until=NOW - timedelta(seconds=1)),
    ])
    def test_inadmissible_promotion_is_ignored(self, promo):
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'CAKE')], [rule('r1', 1, [PERCENT_10])])
        quote = quote_order([LineItem('c1', 'cake', 1, 'STD')], inputs, now=NOW)
        assert quote.totals.discount_total == 0
        assert not quote.diagnostics.promotion_applied

    def test_window_bounds_are_inclusive_and_naive_is_utc(self):
        promo = PromotionInfo(code='P', valid_from=NOW.replace(tzinfo=None), valid_until=NOW)
        inputs = catalog_inputs(promo, [scope('CATEGORY', 'CAKE')], [rule('r1', 1, [PERCENT_10])])
        quote = quote_order([LineItem('c1', 'cake', 1, 'STD')], inputs, now=NOW)
        assert quote.totals.discount_total == 2500


class TestQuoteProperties:
    """Properties that hold for every quote."""

    CARTS = [
        [LineItem('a', 'tea', 3, 'SIZE_PHE'), LineItem('b', 'cake', 2, 'STD')],
        [LineItem('a', 'jelly', 7, 'STD'), LineItem('b', 'coffee', 1, 'SIZE_LA'), LineItem('c', 'mystery', 1, 'STD')],
        [LineItem('a', 'cake', 1, 'STD')],
    ]

    RULES = [
        rule('r1', 1, [PERCENT_10, {'type': 'AMOUNT_OFF', 'amount': 90000, 'allocation': 'EQUAL'}]),
        rule('r2', 2, [{'type': 'AMOUNT_OFF_PER_ITEM', 'amount': 50000, 'max_items': 4}]),
    ]

    @pytest.mark.parametrize('cart', CARTS)
    def test_exclude_only_scope_gives_no_discount(self, cart):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'CAKE', False)], self.RULES)
        assert quote_order(cart, inputs, now=NOW).totals.discount_total == 0

    @pytest.mark.parametrize('cart', CARTS)
    def test_amounts_never_negative_and_round_trip(self, cart):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'DRINK'), scope('CATEGORY', 'TOPPING'),
                                               scope('PRODUCT', 'cake')], self.RULES)
        quote = quote_order(cart, inputs, now=NOW)
        for line in quote.lines + quote.free_items:
            assert line.unit_price_before * line.qty == line.line_total_before
            assert 0 <= line.line_total_after <= line.line_total_before
            assert line.unit_price_after >= 0
        totals = quote.totals
        assert totals.grand_total >= 0
        assert totals.discount_total == totals.subtotal_before - totals.grand_total >= 0

    def test_idempotent(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'DRINK')], self.RULES)
        cart = self.CARTS[0]
        assert quote_order(cart, inputs, now=NOW).to_dict() == quote_order(cart, inputs, now=NOW).to_dict()

    def test_category_include_product_exclude(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'DRINK'), scope('PRODUCT', 'tea', False)],
                                [rule('r1', 1, [PERCENT_10])])
        quote = quote_order([LineItem('a', 'tea', 1, 'SIZE_PHE')], inputs, now=NOW)
        assert quote.totals.discount_total == 0

    def test_unknown_category_never_matches(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'UNKNOWN')], [rule('r1', 1, [PERCENT_10])])
        quote = quote_order([LineItem('a', 'mystery', 1, 'STD')], inputs, now=NOW)
        assert quote.totals.discount_total == 0


class TestDebug:
    """Tests for debug details."""

    def test_debug_details_only_when_enabled(self):
        inputs = catalog_inputs(rule_promo(), [scope('CATEGORY', 'CAKE')], [rule('r1', 1, [PERCENT_10])])
        cart = [LineItem('c1', 'cake', 1, 'STD')]

        plain = quote_order(cart, inputs, now=NOW).to_dict()
        assert 'debug' not in plain['lines'][0]

        debug = quote_order(cart, inputs, config=PricingConfig(debug=True), now=NOW).to_dict()
        details = debug['lines'][0]['debug']
        assert details['normalized_category'] == 'CAKE'
        assert details['is_eligible_for_promo'] is True
        assert details['scope_level'] == 'CATEGORY'
        assert details['price_source'] == 'current'
