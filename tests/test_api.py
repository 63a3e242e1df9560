import os
import tempfile
import unittest
import uuid

import schema
from app import create_app


class ApiTests(unittest.TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.app = create_app(
			{
				"TESTING": True,
				"DB_ENGINE": "sqlite",
				"SQLITE_PATH": os.path.join(self._tmp.name, "sales.db"),
			}
		)
		self.db = self.app.extensions["sales_db"]
		schema.migrate(self.db)
		self.client = self.app.test_client()

	def tearDown(self) -> None:
		self._tmp.cleanup()

	def _create_product(self, **fields):
		body = {"name": "widget", "cost": 10, "quantity": 5}
		body.update(fields)
		r = self.client.post("/v1/products", json=body)
		self.assertEqual(r.status_code, 201, r.data)
		return r.get_json()

	def _add_sale(self, pid, **fields):
		body = {"quantity": 2}
		body.update(fields)
		r = self.client.post(f"/v1/products/{pid}/sales", json=body)
		self.assertEqual(r.status_code, 201, r.data)
		return r.get_json()

	def _count_sales(self) -> int:
		with self.db.cursor() as cur:
			cur.execute("SELECT COUNT(*) FROM sales")
			return cur.fetchone()[0]

	def test_product_and_sale_flow(self):
		created = self._create_product()
		self.assertTrue(created["id"])
		self.assertEqual(created["name"], "widget")
		self.assertEqual(created["cost"], 10)
		self.assertEqual(created["quantity"], 5)
		self.assertEqual(created["sold"], 0)
		self.assertEqual(created["revenue"], 0)
		self.assertIn("date_created", created)
		self.assertIn("date_updated", created)

		r = self.client.get(f"/v1/products/{created['id']}")
		self.assertEqual(r.status_code, 200)
		self.assertEqual(r.get_json(), created)

		sale = self._add_sale(created["id"])
		self.assertEqual(sale["product_id"], created["id"])
		self.assertEqual(sale["quantity"], 2)
		self.assertEqual(sale["paid"], 0)

		r = self.client.get(f"/v1/products/{created['id']}/sales")
		self.assertEqual(r.status_code, 200)
		self.assertEqual(r.get_json(), [sale])

	def test_create_sets_location(self):
		r = self.client.post("/v1/products", json={"name": "widget", "quantity": 1})
		self.assertEqual(r.status_code, 201)
		product = r.get_json()
		self.assertEqual(product["cost"], 0)
		self.assertEqual(r.headers["Location"], f"/v1/products/{product['id']}")

	def test_get_unknown_product(self):
		r = self.client.get(f"/v1/products/{uuid.uuid4()}")
		self.assertEqual(r.status_code, 404)
		self.assertEqual(r.get_json()["error"], "product not found")

	def test_get_malformed_id(self):
		r = self.client.get("/v1/products/not-a-uuid")
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "ID is not in its proper form")

	def test_list_products(self):
		r = self.client.get("/v1/products")
		self.assertEqual(r.status_code, 200)
		self.assertEqual(r.get_json(), [])

		ids = {self._create_product(name=f"item {i}")["id"] for i in range(3)}
		r = self.client.get("/v1/products")
		self.assertEqual(r.status_code, 200)
		self.assertEqual({p["id"] for p in r.get_json()}, ids)

	def test_add_sale_takes_product_from_path(self):
		product = self._create_product()
		other = str(uuid.uuid4())
		sale = self._add_sale(product["id"], product_id=other, id="ignored")
		self.assertEqual(sale["product_id"], product["id"])
		self.assertNotEqual(sale["id"], "ignored")

	def test_add_sale_unknown_product(self):
		r = self.client.post(f"/v1/products/{uuid.uuid4()}/sales", json={"quantity": 1})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "product does not exist")
		self.assertEqual(self._count_sales(), 0)

	def test_add_sale_validation(self):
		product = self._create_product()
		r = self.client.post(f"/v1/products/{product['id']}/sales", json={"quantity": "two", "paid": -5})
		self.assertEqual(r.status_code, 400)
		fields = r.get_json()["details"]["fields"]
		self.assertEqual(fields["quantity"], "must be an integer")
		self.assertEqual(fields["paid"], "must be >= 0")
		self.assertEqual(self._count_sales(), 0)

	def test_list_sales_empty(self):
		product = self._create_product()
		r = self.client.get(f"/v1/products/{product['id']}/sales")
		self.assertEqual(r.status_code, 200)
		self.assertEqual(r.get_json(), [])

	def test_list_sales_for_one_product(self):
		product = self._create_product()
		other = self._create_product(name="gadget")
		for quantity in (1, 2, 3):
			self._add_sale(product["id"], quantity=quantity)
		self._add_sale(other["id"])

		r = self.client.get(f"/v1/products/{product['id']}/sales")
		self.assertEqual(r.status_code, 200)
		sales = r.get_json()
		self.assertEqual(len(sales), 3)
		self.assertTrue(all(s["product_id"] == product["id"] for s in sales))
		self.assertEqual(sorted(s["quantity"] for s in sales), [1, 2, 3])

	def test_list_sales_unknown_product(self):
		r = self.client.get(f"/v1/products/{uuid.uuid4()}/sales")
		self.assertEqual(r.status_code, 404)

	def test_sales_totals(self):
		product = self._create_product()
		self._add_sale(product["id"], quantity=2, paid=20)
		self._add_sale(product["id"], quantity=3, paid=30)

		r = self.client.get(f"/v1/products/{product['id']}")
		body = r.get_json()
		self.assertEqual(body["sold"], 5)
		self.assertEqual(body["revenue"], 50)

		listed = {p["id"]: p for p in self.client.get("/v1/products").get_json()}
		self.assertEqual(listed[product["id"]]["revenue"], 50)

	def test_create_malformed_body(self):
		r = self.client.post("/v1/products", data="{not json", content_type="application/json")
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "request body must be a JSON object")

		r = self.client.post("/v1/products", json=["widget"])
		self.assertEqual(r.status_code, 400)

	def test_create_validation(self):
		r = self.client.post("/v1/products", json={"cost": -1})
		self.assertEqual(r.status_code, 400)
		body = r.get_json()
		self.assertEqual(body["error"], "field validation error")
		self.assertEqual(
			body["details"]["fields"],
			{"name": "is required", "cost": "must be >= 0", "quantity": "is required"},
		)
		self.assertEqual(self.client.get("/v1/products").get_json(), [])

	def test_xml_formatting(self):
		self._create_product()
		r = self.client.get("/v1/products?format=xml")
		self.assertEqual(r.status_code, 200)
		self.assertIn("application/xml", r.headers.get("Content-Type", ""))
		self.assertIn(b"<name>widget</name>", r.data)

	def test_xml_error(self):
		r = self.client.get(f"/v1/products/{uuid.uuid4()}?format=xml")
		self.assertEqual(r.status_code, 404)
		self.assertIn("application/xml", r.headers.get("Content-Type", ""))
		self.assertIn(b"<error>", r.data)

	def test_unknown_format(self):
		r = self.client.get("/v1/products?format=yaml")
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "format must be 'json' or 'xml'")

	def test_unknown_format_writes_nothing(self):
		r = self.client.post("/v1/products?format=yaml", json={"name": "widget", "quantity": 1})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(self.client.get("/v1/products").get_json(), [])

		product = self._create_product()
		r = self.client.post(f"/v1/products/{product['id']}/sales?format=yaml", json={"quantity": 1})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(self._count_sales(), 0)

	def test_integer_out_of_range(self):
		r = self.client.post("/v1/products", json={"name": "widget", "cost": 2**63, "quantity": 1})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["details"]["fields"], {"cost": "must be <= 2147483647"})
		self.assertEqual(self.client.get("/v1/products").get_json(), [])

		product = self._create_product()
		r = self.client.post(f"/v1/products/{product['id']}/sales", json={"quantity": 1, "paid": 2**31})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["details"]["fields"], {"paid": "must be <= 2147483647"})
		self.assertEqual(self._count_sales(), 0)

	def test_sales_malformed_id(self):
		r = self.client.post("/v1/products/not-a-uuid/sales", json={"quantity": 1})
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "ID is not in its proper form")
		self.assertEqual(self._count_sales(), 0)

		r = self.client.get("/v1/products/not-a-uuid/sales")
		self.assertEqual(r.status_code, 400)
		self.assertEqual(r.get_json()["error"], "ID is not in its proper form")

	def test_health(self):
		r = self.client.get("/health")
		self.assertEqual(r.status_code, 200)
		self.assertEqual(r.get_json(), {"status": "ok"})

	def test_unknown_route_and_method(self):
		self.assertEqual(self.client.get("/v1/widgets").status_code, 404)
		self.assertEqual(self.client.delete("/v1/products").status_code, 405)

	def test_store_failure_is_internal_error(self):
		app = create_app(
			{
				"TESTING": True,
				"DB_ENGINE": "sqlite",
				"SQLITE_PATH": os.path.join(self._tmp.name, "empty.db"),
			}
		)
		with self.assertLogs(app.logger, level="ERROR") as logs:
			r = app.test_client().get("/v1/products")
		self.assertEqual(r.status_code, 500)
		self.assertEqual(r.get_json(), {"error": "Internal server error", "status": 500})
		self.assertIn("getting product list", logs.output[0])


if __name__ == "__main__":
	unittest.main()
