"""Database connection providers.

Both providers hand out a cursor for one unit of work through ``cursor()``:
the work is committed when the block exits cleanly and rolled back otherwise.
Queries are written with ``%s`` placeholders and passed through ``sql()``.
"""

from __future__ import annotations

import contextlib
import sqlite3
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol

from flask import Flask


class Database(Protocol):
	"""What the data access layer needs from a connection provider."""

	def sql(self, query: str) -> str: ...

	def cursor(self) -> ContextManager[Any]: ...

	def ping(self) -> None: ...


def fetchone_dict(cursor) -> Optional[Dict[str, Any]]:
	row = cursor.fetchone()
	if row is None:
		return None
	if isinstance(row, dict):
		return row
	# sqlite3.Row and plain tuples both follow cursor.description
	desc = [col[0] for col in cursor.description]
	return dict(zip(desc, row))


def fetchall_dict(cursor) -> List[Dict[str, Any]]:
	rows = cursor.fetchall() or []
	if rows and isinstance(rows[0], dict):
		return list(rows)
	desc = [col[0] for col in cursor.description]
	return [dict(zip(desc, r)) for r in rows]


class SQLiteDatabase:
	"""File-backed SQLite, one connection per unit of work."""

	def __init__(self, path: str) -> None:
		self.path = path

	def sql(self, query: str) -> str:
		return query.replace("%s", "?")

	@contextlib.contextmanager
	def cursor(self) -> Iterator[sqlite3.Cursor]:
		conn = sqlite3.connect(self.path)
		conn.row_factory = sqlite3.Row
		try:
			conn.execute("PRAGMA foreign_keys = ON")
			cur = conn.cursor()
			yield cur
			conn.commit()
		except Exception:
			conn.rollback()
			raise
		finally:
			conn.close()

	def ping(self) -> None:
		with self.cursor() as cur:
			cur.execute("SELECT 1")


class MySQLDatabase:
	"""MySQL through flask-mysqldb; the connection lives for one app context."""

	def __init__(self, app: Flask) -> None:
		# mysqlclient needs the native client library, so it is only loaded
		# when DB_ENGINE selects MySQL
		from flask_mysqldb import MySQL

		self.mysql = MySQL(app)

	def sql(self, query: str) -> str:
		return query

	@contextlib.contextmanager
	def cursor(self) -> Iterator[Any]:
		conn = self.mysql.connection
		cur = conn.cursor()
		try:
			yield cur
			conn.commit()
		except Exception:
			conn.rollback()
			raise
		finally:
			cur.close()

	def ping(self) -> None:
		with self.cursor() as cur:
			cur.execute("SELECT 1")


def open_database(app: Flask) -> Database:
	engine = (app.config.get("DB_ENGINE") or "").strip().lower()
	if engine == "sqlite":
		return SQLiteDatabase(app.config["SQLITE_PATH"])
	if engine == "mysql":
		return MySQLDatabase(app)
	raise RuntimeError(f"Unsupported DB_ENGINE {engine!r}: use 'mysql' or 'sqlite'")
