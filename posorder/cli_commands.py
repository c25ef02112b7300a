"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask seed-demo: Insert a small demo catalog and promotions
"""

import click
from decimal import Decimal
from posorder import database
from posorder.models import (
    Product, ProductPrice, ProductVariant, ProductVariantPrice,
    Promotion, PromotionRule, PromotionScopeTarget, PromotionType, Subcategory,
)
from posorder.utils.formatters import money_vnd

# (code, name, category, {size_key: price}, priced through variants)
DEMO_PRODUCTS = [
    ('TRA-SUA', 'Trà sữa trân châu', 'DRINK', {'SIZE_PHE': 30000, 'SIZE_LA': 38000}, True),
    ('CA-PHE', 'Cà phê sữa đá', 'Đồ uống', {'SIZE_PHE': 18000, 'SIZE_LA': 24000}, True),
    ('BANH-FLAN', 'Bánh flan', 'CAKE', {'STD': 25000}, True),
    ('TOP-THACH', 'Thạch dừa', 'TOPPING', {'STD': 5000}, False),
]


def seed_demo_data(session):
    """
    Insert the demo catalog and promotions.

    Returns the number of products created; existing demo products are left
    untouched.
    """
    drinks = session.query(Subcategory).filter_by(category_code='DRINK', name='Trà sữa').first()
    if drinks is None:
        drinks = Subcategory(category_code='DRINK', name='Trà sữa', sort_order=1)
        session.add(drinks)
        session.flush()

    created = 0
    for code, name, category, prices, with_variants in DEMO_PRODUCTS:
        if session.query(Product).filter_by(code=code).first():
            continue
        product = Product(
            code=code,
            name=name,
            category=category,
            subcategory_id=drinks.id if code == 'TRA-SUA' else None,
        )
        session.add(product)
        session.flush()
        for size_key, amount in prices.items():
            if with_variants:
                variant = ProductVariant(product_id=product.id, size_key=size_key, sku_code=f"{code}-{size_key}")
                variant.price = ProductVariantPrice(price_vat_incl=Decimal(amount))
                session.add(variant)
            else:
                session.add(ProductPrice(product_id=product.id, price_key=size_key, price_vat_incl=Decimal(amount)))
        created += 1

    if not session.get(Promotion, 'FREE_UPSIZE_5'):
        upsize = Promotion(code='FREE_UPSIZE_5', name='Free upsize from 5 drinks',
                           promo_type=PromotionType.RULE.value, min_qty=5)
        upsize.scope_targets.append(PromotionScopeTarget(target_type='CATEGORY', target_id='DRINK'))
        session.add(upsize)

    if not session.get(Promotion, 'CAKE10'):
        cake = Promotion(code='CAKE10', name='10% off cakes', promo_type=PromotionType.RULE.value)
        cake.scope_targets.append(PromotionScopeTarget(target_type='CATEGORY', target_id='CAKE'))
        cake.rules.append(PromotionRule(
            rule_order=1,
            conditions={'min_eligible_qty': 1},
            actions=[{'type': 'PERCENT_OFF', 'percent': 10, 'apply_to': 'ELIGIBLE_LINES'}],
        ))
        session.add(cake)

    session.commit()
    return created


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        database.create_all()
        click.echo(click.style('✅ Tables created', fg='green'))

    @app.cli.command('seed-demo')
    def seed_demo_command():
        """Insert the demo catalog and promotions."""
        session = database.get_session()
        try:
            created = seed_demo_data(session)
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Seeding failed: {e}', fg='red'))
            raise click.Abort()

        click.echo(click.style(f'\n✅ Demo data ready ({created} new products)', fg='green', bold=True))
        for code, name, _, prices, _ in DEMO_PRODUCTS:
            listing = ', '.join(f"{key} {money_vnd(amount)}" for key, amount in prices.items())
            click.echo(f'   {code}: {name} ({listing})')
        click.echo('\n💡 Promotions: FREE_UPSIZE_5, CAKE10')
