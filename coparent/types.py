"""Portable SQL types that work across PostgreSQL and SQLite.

PostgreSQL uses a native text ARRAY, SQLite a JSON list.
"""

import sqlalchemy as sa
from sqlalchemy import JSON, TypeDecorator


class StringArray(TypeDecorator):
    """PostgreSQL ``ARRAY(Text)`` on PG, JSON list on other dialects.

    Used for short identifier lists such as a family's owners.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import ARRAY

            return dialect.type_descriptor(ARRAY(sa.Text()))
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if value is not None:
            return [str(v) for v in value]
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return []
        return list(value)
