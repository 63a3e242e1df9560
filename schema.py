"""Table definitions, sample data and the ``flask migrate`` / ``flask seed`` commands."""

from __future__ import annotations

from typing import List, Tuple

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from database import Database, fetchone_dict

# The DDL is kept to what MySQL (InnoDB) and SQLite both accept.
_MIGRATIONS: List[str] = [
	"""
	CREATE TABLE IF NOT EXISTS products (
		product_id CHAR(36) NOT NULL,
		name VARCHAR(255) NOT NULL,
		cost INTEGER NOT NULL,
		quantity INTEGER NOT NULL,
		date_created DATETIME NOT NULL,
		date_updated DATETIME NOT NULL,
		PRIMARY KEY (product_id)
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS sales (
		sale_id CHAR(36) NOT NULL,
		product_id CHAR(36) NOT NULL,
		quantity INTEGER NOT NULL,
		paid INTEGER NOT NULL,
		date_created DATETIME NOT NULL,
		PRIMARY KEY (sale_id),
		FOREIGN KEY (product_id) REFERENCES products (product_id) ON DELETE CASCADE
	)
	""",
]

_SEED_PRODUCTS: List[Tuple[str, str, int, int, str]] = [
	("a2b0639f-2cc6-44b8-b97b-15d69dbb511e", "Comic Books", 50, 42, "2019-01-01 00:00:01"),
	("72f8b983-3eb4-48db-9ed0-e45cc6bd716b", "McDonalds Toys", 75, 120, "2019-01-01 00:00:02"),
]

_SEED_SALES: List[Tuple[str, str, int, int, str]] = [
	("98b6d4b8-f04b-4c79-8c2e-a0aef46854b7", "a2b0639f-2cc6-44b8-b97b-15d69dbb511e", 2, 100, "2019-01-01 00:00:03"),
	("85f6fb09-eb05-4874-ae39-82d1a30fe0d7", "a2b0639f-2cc6-44b8-b97b-15d69dbb511e", 5, 250, "2019-01-01 00:00:04"),
	("a235be9e-ab5d-44e6-a987-fa1c749264c7", "72f8b983-3eb4-48db-9ed0-e45cc6bd716b", 3, 225, "2019-01-01 00:00:05"),
]


def migrate(db: Database) -> None:
	with db.cursor() as cur:
		for statement in _MIGRATIONS:
			cur.execute(statement)


def seed(db: Database) -> int:
	"""Insert the sample rows that are not there yet; returns how many were added."""
	added = 0
	with db.cursor() as cur:
		for product_id, name, cost, quantity, created in _SEED_PRODUCTS:
			cur.execute(db.sql("SELECT product_id FROM products WHERE product_id = %s"), (product_id,))
			if fetchone_dict(cur) is not None:
				continue
			cur.execute(
				db.sql(
					"""
					INSERT INTO products (product_id, name, cost, quantity, date_created, date_updated)
					VALUES (%s, %s, %s, %s, %s, %s)
					"""
				),
				(product_id, name, cost, quantity, created, created),
			)
			added += 1

		for sale_id, product_id, quantity, paid, created in _SEED_SALES:
			cur.execute(db.sql("SELECT sale_id FROM sales WHERE sale_id = %s"), (sale_id,))
			if fetchone_dict(cur) is not None:
				continue
			cur.execute(
				db.sql(
					"""
					INSERT INTO sales (sale_id, product_id, quantity, paid, date_created)
					VALUES (%s, %s, %s, %s, %s)
					"""
				),
				(sale_id, product_id, quantity, paid, created),
			)
			added += 1
	return added


@click.command("migrate")
@with_appcontext
def migrate_command() -> None:
	"""Create the products and sales tables."""
	migrate(current_app.extensions["sales_db"])
	click.echo("Migrations complete")


@click.command("seed")
@with_appcontext
def seed_command() -> None:
	"""Load the sample products and sales."""
	added = seed(current_app.extensions["sales_db"])
	click.echo(f"Seeded {added} rows")


def init_app(app: Flask) -> None:
	app.cli.add_command(migrate_command)
	app.cli.add_command(seed_command)
