"""Products and their sales: the data access layer behind the handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from database import Database, fetchall_dict, fetchone_dict
from web import AppError, Fields, Kind

_DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# widest value the INTEGER columns hold on MySQL
MAX_INT = 2**31 - 1


class NotFound(AppError):
	kind = Kind.NOT_FOUND

	def __init__(self, message: str = "product not found") -> None:
		super().__init__(message)


class InvalidID(AppError):
	kind = Kind.VALIDATION

	def __init__(self, message: str = "ID is not in its proper form") -> None:
		super().__init__(message)


class InvalidReference(AppError):
	kind = Kind.VALIDATION

	def __init__(self, message: str = "product does not exist") -> None:
		super().__init__(message)


def now_utc() -> datetime:
	"""Current UTC time at the precision the tables keep."""
	return datetime.now(timezone.utc).replace(microsecond=0)


def _to_db_time(value: datetime) -> str:
	return value.astimezone(timezone.utc).strftime(_DB_TIME_FORMAT)


def _parse_db_time(value: Any) -> datetime:
	# MySQLdb returns naive datetimes, sqlite3 returns the stored text
	if isinstance(value, datetime):
		parsed = value
	elif isinstance(value, str):
		parsed = datetime.fromisoformat(value)
	else:
		raise TypeError(f"Unsupported timestamp type: {type(value)!r}")
	if parsed.tzinfo is None:
		return parsed.replace(tzinfo=timezone.utc)
	return parsed.astimezone(timezone.utc)


def _iso(value: datetime) -> str:
	return value.isoformat()


def _check_id(product_id: str) -> str:
	try:
		return str(uuid.UUID(str(product_id)))
	except ValueError:
		raise InvalidID()


@dataclass(frozen=True)
class NewProduct:
	"""What a client sends to create a product."""

	name: str
	cost: int
	quantity: int

	@classmethod
	def decode(cls, body: Mapping[str, Any]) -> "NewProduct":
		f = Fields(body)
		value = cls(
			name=f.string("name", required=True),
			cost=f.integer("cost", minimum=0, maximum=MAX_INT),
			quantity=f.integer("quantity", required=True, minimum=1, maximum=MAX_INT),
		)
		f.check()
		return value


@dataclass(frozen=True)
class Product:
	"""A product with the totals of its sales.

	``sold`` and ``revenue`` are not stored; they sum the product's sales.
	"""

	id: str
	name: str
	cost: int
	quantity: int
	sold: int
	revenue: int
	date_created: datetime
	date_updated: datetime

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"name": self.name,
			"cost": self.cost,
			"quantity": self.quantity,
			"sold": self.sold,
			"revenue": self.revenue,
			"date_created": _iso(self.date_created),
			"date_updated": _iso(self.date_updated),
		}


@dataclass(frozen=True)
class NewSale:
	"""What a client sends to record a sale. The product comes from the URL."""

	quantity: int
	paid: int

	@classmethod
	def decode(cls, body: Mapping[str, Any]) -> "NewSale":
		f = Fields(body)
		value = cls(
			quantity=f.integer("quantity", required=True, minimum=0, maximum=MAX_INT),
			paid=f.integer("paid", minimum=0, maximum=MAX_INT),
		)
		f.check()
		return value


@dataclass(frozen=True)
class Sale:
	id: str
	product_id: str
	quantity: int
	paid: int
	date_created: datetime

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"product_id": self.product_id,
			"quantity": self.quantity,
			"paid": self.paid,
			"date_created": _iso(self.date_created),
		}


_SELECT_PRODUCTS = """
	SELECT
		p.product_id, p.name, p.cost, p.quantity,
		COALESCE(SUM(s.quantity), 0) AS sold,
		COALESCE(SUM(s.paid), 0) AS revenue,
		p.date_created, p.date_updated
	FROM products AS p
	LEFT JOIN sales AS s ON p.product_id = s.product_id
"""


def _row_to_product(row: Mapping[str, Any]) -> Product:
	return Product(
		id=str(row["product_id"]),
		name=row["name"],
		cost=int(row["cost"]),
		quantity=int(row["quantity"]),
		sold=int(row["sold"]),
		revenue=int(row["revenue"]),
		date_created=_parse_db_time(row["date_created"]),
		date_updated=_parse_db_time(row["date_updated"]),
	)


def _row_to_sale(row: Mapping[str, Any]) -> Sale:
	return Sale(
		id=str(row["sale_id"]),
		product_id=str(row["product_id"]),
		quantity=int(row["quantity"]),
		paid=int(row["paid"]),
		date_created=_parse_db_time(row["date_created"]),
	)


def _product_exists(db: Database, cur: Any, product_id: str) -> bool:
	cur.execute(db.sql("SELECT product_id FROM products WHERE product_id = %s"), (product_id,))
	return fetchone_dict(cur) is not None


def create(db: Database, new_product: NewProduct, now: datetime) -> Product:
	"""Insert a product built from ``new_product`` and return it with its id."""
	product = Product(
		id=str(uuid.uuid4()),
		name=new_product.name,
		cost=new_product.cost,
		quantity=new_product.quantity,
		sold=0,
		revenue=0,
		date_created=now,
		date_updated=now,
	)
	with db.cursor() as cur:
		cur.execute(
			db.sql(
				"""
				INSERT INTO products (product_id, name, cost, quantity, date_created, date_updated)
				VALUES (%s, %s, %s, %s, %s, %s)
				"""
			),
			(
				product.id,
				product.name,
				product.cost,
				product.quantity,
				_to_db_time(now),
				_to_db_time(now),
			),
		)
	return product


def list_products(db: Database) -> List[Product]:
	with db.cursor() as cur:
		cur.execute(db.sql(_SELECT_PRODUCTS + " GROUP BY p.product_id ORDER BY p.date_created, p.name"))
		rows = fetchall_dict(cur)
	return [_row_to_product(r) for r in rows]


def get(db: Database, product_id: str) -> Product:
	product_id = _check_id(product_id)
	with db.cursor() as cur:
		cur.execute(
			db.sql(_SELECT_PRODUCTS + " WHERE p.product_id = %s GROUP BY p.product_id"),
			(product_id,),
		)
		row = fetchone_dict(cur)
	if row is None:
		raise NotFound()
	return _row_to_product(row)


def add_sale(db: Database, new_sale: NewSale, product_id: str, now: datetime) -> Sale:
	"""Record a sale of an existing product.

	The existence check and the insert share one transaction, so a rejected
	sale leaves nothing behind.
	"""
	product_id = _check_id(product_id)
	sale = Sale(
		id=str(uuid.uuid4()),
		product_id=product_id,
		quantity=new_sale.quantity,
		paid=new_sale.paid,
		date_created=now,
	)
	with db.cursor() as cur:
		if not _product_exists(db, cur, product_id):
			raise InvalidReference()
		cur.execute(
			db.sql(
				"""
				INSERT INTO sales (sale_id, product_id, quantity, paid, date_created)
				VALUES (%s, %s, %s, %s, %s)
				"""
			),
			(sale.id, sale.product_id, sale.quantity, sale.paid, _to_db_time(now)),
		)
	return sale


def list_sales(db: Database, product_id: str) -> List[Sale]:
	product_id = _check_id(product_id)
	with db.cursor() as cur:
		if not _product_exists(db, cur, product_id):
			raise NotFound()
		cur.execute(
			db.sql(
				"""
				SELECT sale_id, product_id, quantity, paid, date_created
				FROM sales
				WHERE product_id = %s
				ORDER BY date_created
				"""
			),
			(product_id,),
		)
		rows = fetchall_dict(cur)
	return [_row_to_sale(r) for r in rows]
