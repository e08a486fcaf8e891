"""Demo data: a small catalog plus an admin and a customer account."""

from decimal import Decimal

import click
from flask.cli import with_appcontext

from storefront.extensions import db
from storefront.models import Product, User

PRODUCTS = [
    {'sku': 'BRD-SOUR', 'name': 'Sourdough Loaf', 'price': '10.00', 'stock': 40,
     'description': 'Classic tangy sourdough with a crispy crust'},
    {'sku': 'BRD-MULT', 'name': 'Multigrain Bread', 'price': '7.50', 'stock': 35,
     'description': 'Multigrain bread with seeds'},
    {'sku': 'PST-CRSS', 'name': 'Butter Croissant', 'price': '3.25', 'stock': 60,
     'description': 'Buttery, flaky French croissant'},
    {'sku': 'CKE-CHOC', 'name': 'Chocolate Truffle Cake', 'price': '25.00', 'stock': 12,
     'description': 'Rich chocolate cake with ganache'},
    {'sku': 'CKE-REDV', 'name': 'Red Velvet Cake', 'price': '28.00', 'stock': 8,
     'description': 'Cream cheese frosted red velvet'},
    {'sku': 'CKS-OATS', 'name': 'Oatmeal Cookies (6)', 'price': '6.00', 'stock': 0,
     'description': 'Chewy oatmeal raisin cookies'},
]

USERS = [
    {'email': 'admin@storefront.dev', 'name': 'Admin User', 'password': 'admin123', 'role': 'admin'},
    {'email': 'customer@storefront.dev', 'name': 'Sample Customer', 'password': 'customer123',
     'role': 'customer'},
]


def seed_catalog():
    """Insert demo rows that are not there yet. Returns (products, users) added."""
    db.create_all()

    added_products = 0
    for data in PRODUCTS:
        if Product.query.filter_by(sku=data['sku']).first():
            continue
        db.session.add(Product(
            sku=data['sku'],
            name=data['name'],
            description=data['description'],
            price=Decimal(data['price']),
            stock=data['stock'],
            status='active',
        ))
        added_products += 1

    added_users = 0
    for data in USERS:
        if User.query.filter_by(email=data['email']).first():
            continue
        user = User(email=data['email'], name=data['name'], role=data['role'])
        user.set_password(data['password'])
        db.session.add(user)
        added_users += 1

    db.session.commit()
    return added_products, added_users


@click.command('seed-catalog')
@with_appcontext
def seed_catalog_command():
    """Seed the database with demo products and users."""
    products, users = seed_catalog()
    if not products and not users:
        click.echo('Database already seeded!')
        return
    click.echo(f'Added {products} products and {users} users.')
    for data in USERS:
        click.echo(f"  {data['role']}: {data['email']} / {data['password']}")
