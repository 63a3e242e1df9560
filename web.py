"""Request decoding, response encoding and the error model shared by handlers.

Handlers raise ``AppError`` (or wrap whatever they caught with ``wrap``) and
leave the status code to the translator registered in ``app.create_app``.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, Mapping, Optional

import dicttoxml
from flask import Response, jsonify, make_response, request
from werkzeug.exceptions import BadRequest


class Kind(enum.Enum):
	VALIDATION = "validation"
	NOT_FOUND = "not_found"
	INTERNAL = "internal"


_STATUS: Dict[Kind, int] = {
	Kind.VALIDATION: 400,
	Kind.NOT_FOUND: 404,
	Kind.INTERNAL: 500,
}


def status_for(kind: Kind) -> int:
	return _STATUS[kind]


class AppError(Exception):
	"""An error tagged with a ``Kind``.

	``public`` is the text a client may see. It is carried unchanged through
	``wrap`` so the translator can answer with the original reason while the
	log gets the full chain of context.
	"""

	kind = Kind.INTERNAL

	def __init__(
		self,
		message: str,
		*,
		kind: Optional[Kind] = None,
		public: Optional[str] = None,
		details: Optional[Dict[str, Any]] = None,
	) -> None:
		super().__init__(message)
		if kind is not None:
			self.kind = kind
		self.public = public if public is not None else message
		self.details = details


class RequestError(AppError):
	"""The request body could not be decoded into the expected value."""

	kind = Kind.VALIDATION

	def __init__(self, message: str, *, fields: Optional[Dict[str, str]] = None) -> None:
		super().__init__(message, details={"fields": fields} if fields else None)


def wrap(err: BaseException, context: str) -> AppError:
	"""Prefix ``err`` with ``context`` keeping its kind. Use as ``raise wrap(e, ...) from e``."""
	if isinstance(err, AppError):
		return AppError(f"{context}: {err}", kind=err.kind, public=err.public, details=err.details)
	return AppError(f"{context}: {err}", kind=Kind.INTERNAL)


class Fields:
	"""Collects every field problem of one request body before failing."""

	def __init__(self, body: Mapping[str, Any]) -> None:
		self.body = body
		self.errors: Dict[str, str] = {}

	def string(self, name: str, *, required: bool = False, default: str = "") -> str:
		value = self.body.get(name)
		if value is None:
			if required:
				self.errors[name] = "is required"
			return default
		if not isinstance(value, str):
			self.errors[name] = "must be a string"
			return default
		value = value.strip()
		if required and not value:
			self.errors[name] = "is required"
		return value

	def integer(
		self,
		name: str,
		*,
		required: bool = False,
		default: int = 0,
		minimum: Optional[int] = None,
		maximum: Optional[int] = None,
	) -> int:
		value = self.body.get(name)
		if value is None:
			if required:
				self.errors[name] = "is required"
			return default
		# bool is an int subclass; JSON true/false is not a number here
		if isinstance(value, bool) or not isinstance(value, int):
			self.errors[name] = "must be an integer"
			return default
		if minimum is not None and value < minimum:
			self.errors[name] = f"must be >= {minimum}"
		elif maximum is not None and value > maximum:
			self.errors[name] = f"must be <= {maximum}"
		return value

	def check(self) -> None:
		if self.errors:
			raise RequestError("field validation error", fields=dict(self.errors))


def decode(into: Any) -> Any:
	"""Decode the JSON body of the current request with ``into.decode``."""
	body = request.get_json(silent=True)
	if not isinstance(body, dict):
		raise RequestError("request body must be a JSON object")
	return into.decode(body)


def _plain(value: Any) -> Any:
	if isinstance(value, (list, tuple)):
		return [_plain(v) for v in value]
	if hasattr(value, "to_dict"):
		return value.to_dict()
	return value


def encode(value: Any, status: int) -> Response:
	return api_response(_plain(value), status=status)


def get_format() -> str:
	fmt = (request.args.get("format") or "json").strip().lower()
	if fmt not in {"json", "xml"}:
		raise BadRequest("format must be 'json' or 'xml'")
	return fmt


def _to_xml(payload: Any, root: str = "response") -> bytes:
	return dicttoxml.dicttoxml(payload, custom_root=root, attr_type=False)


def api_response(payload: Any, status: int = 200, *, root: str = "response") -> Response:
	fmt = get_format()
	if fmt == "xml":
		resp = make_response(_to_xml(payload, root=root), status)
		resp.headers["Content-Type"] = "application/xml; charset=utf-8"
		return resp
	return make_response(jsonify(payload), status)


def error_response(message: str, status: int, *, details: Optional[Dict[str, Any]] = None) -> Response:
	payload: Dict[str, Any] = {"error": message, "status": status}
	if details:
		payload["details"] = details
	try:
		return api_response(payload, status=status, root="error")
	except BadRequest:
		# an unsupported ?format= must still produce an error body
		return make_response(jsonify(payload), status)


def format_suffix() -> str:
	fmt = request.args.get("format")
	if fmt:
		return f"?format={fmt}"
	return ""
