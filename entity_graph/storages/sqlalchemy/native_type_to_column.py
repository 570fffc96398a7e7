import typing

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Integer, Numeric, String, Text


# database type names as reported by schema introspection
mapping = {
    "int": Integer,
    "integer": Integer,
    "bigint": BigInteger,
    "boolean": Boolean,
    "numeric": Numeric,
    "text": Text,
    "citext": Text,
    "character varying": String(255),
    "varchar": String(255),
    "timestamp with time zone": DateTime(timezone=True),
    "date": Date,
}


def convert(db_type: str) -> typing.Any:
    try:
        return mapping[db_type]
    except KeyError:
        raise TypeError(f"Unsupported type - {db_type}")
