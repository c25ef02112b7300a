import pytest
from decimal import Decimal

from posorder import create_app
from posorder.database import get_session
from posorder.models import (
    Product, ProductPrice, ProductVariant, ProductVariantPrice,
    Promotion, PromotionRule, PromotionScopeTarget, Subcategory,
)


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestingConfig')
    yield app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.remove()


class CatalogFactory:
    """
    Creates catalog and promotion rows.

    Returns plain ids so tests never hold ORM instances across requests.
    """

    def __init__(self, session):
        self.session = session

    def subcategory(self, name='Trà sữa', category_code='DRINK'):
        sub = Subcategory(category_code=category_code, name=name)
        self.session.add(sub)
        self.session.commit()
        return sub.id

    def product(self, name, category='DRINK', prices=None, legacy_prices=None,
                subcategory_id=None, is_active=True):
        """
        prices: {size_key: amount} stored as variants with current prices
        legacy_prices: {size_key: amount} stored in the legacy table
        Returns (product_id, {size_key: variant_id}).
        """
        product = Product(name=name, category=category, subcategory_id=subcategory_id, is_active=is_active)
        self.session.add(product)
        self.session.flush()

        variant_ids = {}
        for size_key, amount in (prices or {}).items():
            variant = ProductVariant(product_id=product.id, size_key=size_key)
            if amount is not None:
                variant.price = ProductVariantPrice(price_vat_incl=Decimal(amount))
            self.session.add(variant)
            self.session.flush()
            variant_ids[size_key] = variant.id

        for size_key, amount in (legacy_prices or {}).items():
            self.session.add(ProductPrice(product_id=product.id, price_key=size_key, price_vat_incl=Decimal(amount)))

        self.session.commit()
        return product.id, variant_ids

    def promotion(self, code, promo_type='RULE', scopes=(), rules=(), **kwargs):
        """
        scopes: (target_type, target_id, is_included) tuples
        rules: (rule_order, conditions, actions) tuples
        """
        promotion = Promotion(code=code, promo_type=promo_type, **kwargs)
        for target_type, target_id, included in scopes:
            promotion.scope_targets.append(
                PromotionScopeTarget(target_type=target_type, target_id=target_id, is_included=included)
            )
        for rule_order, conditions, actions in rules:
            promotion.rules.append(PromotionRule(rule_order=rule_order, conditions=conditions, actions=actions))
        self.session.add(promotion)
        self.session.commit()
        return code


@pytest.fixture(scope='function')
def catalog(session):
    return CatalogFactory(session)


@pytest.fixture(scope='function')
def drink_and_cake(catalog):
    """Milk tea with two sizes and a cake, both priced through variants."""
    tea_id, tea_variants = catalog.product('Trà sữa', 'DRINK', prices={'SIZE_PHE': 30000, 'SIZE_LA': 38000})
    cake_id, cake_variants = catalog.product('Bánh flan', 'CAKE', prices={'STD': 25000})
    return {
        'tea': tea_id,
        'tea_variants': tea_variants,
        'cake': cake_id,
        'cake_variants': cake_variants,
    }
