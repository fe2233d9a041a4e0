# decentscore/models/types.py
from sqlalchemy.types import TypeDecorator, String
from sqlalchemy import JSON


class JSONBCompat(TypeDecorator):
    """
    JSONB on PostgreSQL, plain JSON on SQLite and the rest.
    Lets the same models run under tests (sqlite://) and in production (postgresql://).
    """
    impl = JSON
    cache_ok = True

    def __init__(self, **jsonb_kwargs):
        super().__init__()
        self._jsonb_kwargs = jsonb_kwargs

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import JSONB
            return dialect.type_descriptor(JSONB(**self._jsonb_kwargs))
        return dialect.type_descriptor(JSON())


class Address(TypeDecorator):
    """EVM address stored lowercase so lookups never depend on checksum casing."""
    impl = String(42)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return value.strip().lower()

    def process_result_value(self, value, dialect):
        return value


class BigIntString(TypeDecorator):
    """Token amounts exceed 64 bits; persist them as decimal strings, read back as int."""
    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)
