# blissora/cli.py
from datetime import timedelta

import click
from flask.cli import with_appcontext

from .extensions import db
from .model import Coupon, User
from .utils.clock import utcnow
from .utils.money import D
from .utils.text import normalize_email


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
@click.option("--role", type=click.Choice(["admin", "seller", "user"]), default="admin", show_default=True)
@with_appcontext
def create_admin(email, password, name, role):
    """Create a password account, an admin unless --role says otherwise."""
    email = normalize_email(email)
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, role=role)
    u.set_password(password)
    if role == "seller":
        u.store_name = name
        u.seller_approved = True
    db.session.add(u); db.session.commit()
    click.echo(f"{role.capitalize()} created: {u.id} {u.email}")


@click.command("create-coupon")
@click.option("--code", required=True)
@click.option("--type", "discount_type", type=click.Choice(["percentage", "fixed"]), default="percentage")
@click.option("--value", type=float, required=True)
@click.option("--max-discount", type=float, default=None)
@click.option("--days", type=int, default=None, help="valid for this many days from now")
@with_appcontext
def create_coupon(code, discount_type, value, max_discount, days):
    code = code.strip().upper()
    if value <= 0 or (discount_type == "percentage" and value > 100):
        click.echo("Invalid coupon value"); return
    if Coupon.query.filter_by(code=code).first():
        click.echo("Coupon already exists"); return
    now = utcnow()
    c = Coupon(
        code=code,
        discount_type=discount_type,
        value=D(value),
        max_discount=D(max_discount) if max_discount is not None else None,
        starts_at=now,
        ends_at=now + timedelta(days=days) if days else None,
    )
    db.session.add(c); db.session.commit()
    click.echo(f"Coupon created: {c.code}")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(create_coupon)
