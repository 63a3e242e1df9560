from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from flask import Flask, Response
from werkzeug.exceptions import HTTPException

import schema
import web
from config import Config
from database import open_database
from handlers import Products


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
	app = Flask(__name__)
	app.config.from_object(Config)

	# Ensure env vars always take precedence (Config class attributes are evaluated at import time).
	def _env(name: str, default: Any) -> Any:
		value = os.getenv(name)
		if value is None:
			return default
		return value

	for key in ("DB_ENGINE", "SQLITE_PATH", "MYSQL_USER", "MYSQL_PASSWORD", "MYSQL_HOST", "MYSQL_DB", "MYSQL_CURSORCLASS", "LOG_LEVEL"):
		app.config[key] = _env(key, app.config.get(key))
	app.config["MYSQL_PORT"] = int(_env("MYSQL_PORT", app.config.get("MYSQL_PORT", 3306)))

	if overrides:
		app.config.update(overrides)

	app.logger.setLevel(str(app.config["LOG_LEVEL"]).upper())

	db = open_database(app)
	app.extensions["sales_db"] = db

	app.register_blueprint(Products(db, app.logger).blueprint)
	schema.init_app(app)

	@app.get("/health")
	def health() -> Response:
		try:
			db.ping()
		except Exception as e:
			raise web.wrap(e, "checking database") from e
		return web.api_response({"status": "ok"})

	# -------------------------
	# Consistent JSON/XML errors
	# -------------------------
	@app.errorhandler(web.AppError)
	def _app_error(err: web.AppError):
		status = web.status_for(err.kind)
		if status >= 500:
			app.logger.error("%s", err, exc_info=err)
			return web.error_response("Internal server error", status)
		app.logger.info("request failed: %s", err)
		return web.error_response(err.public, status, details=err.details)

	@app.errorhandler(HTTPException)
	def _http_error(err: HTTPException):
		return web.error_response(str(err.description or err.name), err.code or 500)

	@app.errorhandler(Exception)
	def _unhandled(err: Exception):
		app.logger.error("unhandled error: %s", err, exc_info=err)
		return web.error_response("Internal server error", 500)

	return app


if __name__ == "__main__":
	app = create_app()
	app.run(host="0.0.0.0", port=app.config["PORT"], debug=True)
