from __future__ import annotations

import logging

from flask import Blueprint, Response

import products
import web
from database import Database


class Products:
	"""Handlers for products and their sales.

	Holds the database the handlers work against and the blueprint that routes
	requests to them. Every failure is wrapped once with what was being done
	and re-raised for the application's error handlers.
	"""

	def __init__(self, db: Database, log: logging.Logger) -> None:
		self.db = db
		self.log = log

		bp = Blueprint("products", __name__, url_prefix="/v1/products")
		# reject an unsupported ?format= before anything is written
		bp.before_request(self._check_format)
		bp.add_url_rule("", "create", self.create, methods=["POST"])
		bp.add_url_rule("", "list", self.list, methods=["GET"])
		bp.add_url_rule("/<id>", "get", self.get, methods=["GET"])
		bp.add_url_rule("/<id>/sales", "add_sale", self.add_sale, methods=["POST"])
		bp.add_url_rule("/<id>/sales", "list_sales", self.list_sales, methods=["GET"])
		self.blueprint = bp

		self.log.debug("product routes registered under %s", bp.url_prefix)

	def _check_format(self) -> None:
		web.get_format()

	def create(self) -> Response:
		"""Create a product; the stored product with its generated fields is returned."""
		try:
			new_product = web.decode(products.NewProduct)
		except Exception as e:
			raise web.wrap(e, "decoding new product") from e

		try:
			p = products.create(self.db, new_product, products.now_utc())
		except Exception as e:
			raise web.wrap(e, "creating new product") from e

		resp = web.encode(p, 201)
		resp.headers["Location"] = f"/v1/products/{p.id}" + web.format_suffix()
		return resp

	def list(self) -> Response:
		try:
			items = products.list_products(self.db)
		except Exception as e:
			raise web.wrap(e, "getting product list") from e

		return web.encode(items, 200)

	def get(self, id: str) -> Response:
		try:
			p = products.get(self.db, id)
		except Exception as e:
			raise web.wrap(e, f"getting product {id!r}") from e

		return web.encode(p, 200)

	def add_sale(self, id: str) -> Response:
		"""Record a sale for the product in the URL. A product id in the body is ignored."""
		try:
			new_sale = web.decode(products.NewSale)
		except Exception as e:
			raise web.wrap(e, "decoding new sale") from e

		try:
			sale = products.add_sale(self.db, new_sale, id, products.now_utc())
		except Exception as e:
			raise web.wrap(e, "adding new sale") from e

		return web.encode(sale, 201)

	def list_sales(self, id: str) -> Response:
		try:
			items = products.list_sales(self.db, id)
		except Exception as e:
			raise web.wrap(e, "getting sales list") from e

		return web.encode(items, 200)
