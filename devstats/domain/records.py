"""
Record model shared by every telemetry type.

A record is a frozen pydantic model with a UTC timestamp. Its storage schema
is an ordered tuple of ``Column`` descriptors derived once from the field
declarations; stores only ever talk to records through those descriptors.
"""
from __future__ import annotations

import functools
import re
import types
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Annotated,
    Any,
    ClassVar,
    Literal,
    Optional,
    Sequence,
    Union,
    get_args,
    get_origin,
)

from pydantic import (
    AfterValidator,
    BaseModel,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from devstats.errors import CoercionError, StoreConfigurationError

ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_SQL_TYPES: dict[Any, str] = {
    str: "TEXT",
    int: "INTEGER",
    float: "REAL",
    bool: "BOOLEAN",
    datetime: "DATETIME",
}

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_CONSTRAINT_WORDS = frozenset(
    {"NOT", "NULL", "PRIMARY", "UNIQUE", "DEFAULT", "CHECK", "REFERENCES", "COLLATE", "CONSTRAINT"}
)


def sql_affinity(sql_type: str) -> str:
    """
    SQLite column affinity of a declared type, following SQLite's own rules.

    ``"VARCHAR(32) NOT NULL"`` -> ``"TEXT"``, ``"NUMERIC(10,2)"`` -> ``"NUMERIC"``,
    ``"DATETIME"`` -> ``"NUMERIC"``.
    """
    words = []
    for word in sql_type.split("(", 1)[0].upper().split():
        if word in _CONSTRAINT_WORDS:
            break
        words.append(word)
    type_name = " ".join(words)
    if "INT" in type_name:
        return "INTEGER"
    if any(token in type_name for token in ("CHAR", "CLOB", "TEXT")):
        return "TEXT"
    if not type_name or "BLOB" in type_name:
        return "BLOB"
    if any(token in type_name for token in ("REAL", "FLOA", "DOUB")):
        return "REAL"
    return "NUMERIC"


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_timestamp(value: datetime) -> datetime:
    value = ensure_utc(value)
    if value == ZERO_TIME:
        raise ValueError("timestamp must be set (got the zero time)")
    return value


Timestamp = Annotated[datetime, AfterValidator(_validate_timestamp)]


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC text, so string order matches time order."""
    return ensure_utc(value).isoformat(timespec="microseconds")


def parse_timestamp(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


def _storage_type(annotation: Any) -> Any:
    # Literal and Enum values of strings are stored as their plain text.
    if get_origin(annotation) is Literal and all(isinstance(arg, str) for arg in get_args(annotation)):
        return str
    if isinstance(annotation, type) and issubclass(annotation, Enum) and issubclass(annotation, str):
        return str
    return annotation


@dataclass(frozen=True)
class Column:
    """
    Mapping between one record field and one storage column.

    ``sql_type`` is the declared column type as written in the DDL. Values are
    encoded from the field's Python type, shaped by the column's SQLite
    affinity: datetimes always become fixed-width UTC text, text columns hold
    strings verbatim and anything else as JSON, numeric columns hold numbers.
    """

    field: str
    name: str
    sql_type: str
    python_type: Any = str
    nullable: bool = False

    @property
    def affinity(self) -> str:
        return sql_affinity(self.sql_type)

    @functools.cached_property
    def _adapter(self) -> TypeAdapter:
        return TypeAdapter(self.python_type)

    def _reject(self, value: Any) -> CoercionError:
        return CoercionError(self.name, self.sql_type, value)

    def encode(self, value: Any) -> Any:
        if value is None:
            return None
        if self.python_type is datetime:
            if isinstance(value, datetime):
                return format_timestamp(value)
            raise self._reject(value)

        affinity = self.affinity
        if affinity in ("TEXT", "BLOB"):
            if isinstance(value, Enum) and isinstance(value, str):
                return value.value
            if isinstance(value, str):
                return value
            if self.python_type is str:
                raise self._reject(value)
            try:
                return self._adapter.dump_json(value).decode("utf-8")
            except Exception as exc:
                raise self._reject(value) from exc

        if isinstance(value, bool):
            if self.python_type is bool:
                return int(value)
        elif isinstance(value, int):
            if not INT64_MIN <= value <= INT64_MAX:
                raise self._reject(value)
            return float(value) if affinity == "REAL" else value
        elif isinstance(value, float):
            if affinity != "INTEGER":
                return value
        raise self._reject(value)

    def decode(self, raw: Any) -> Any:
        if raw is None:
            return None
        if self.python_type is datetime:
            if isinstance(raw, str):
                try:
                    return parse_timestamp(raw)
                except ValueError as exc:
                    raise self._reject(raw) from exc
            raise self._reject(raw)

        if isinstance(raw, str):
            if self.python_type is str:
                return raw
            if self.affinity not in ("TEXT", "BLOB"):
                raise self._reject(raw)
            try:
                return self._adapter.validate_json(raw)
            except ValidationError as exc:
                raise self._reject(raw) from exc

        if isinstance(raw, (int, float)):
            if self.python_type is bool and raw in (0, 1):
                return bool(raw)
            if self.python_type is int and float(raw).is_integer():
                return int(raw)
            if self.python_type is float:
                return float(raw)
        raise self._reject(raw)


def infer_columns(model: type[BaseModel]) -> tuple[Column, ...]:
    """
    Build column descriptors from a model's declared fields.

    Fields declared with ``Field(exclude=True)`` are not persisted. An
    explicit DDL type can be given with ``json_schema_extra={"sql": ...}``.
    """
    columns = []
    for field_name, info in model.model_fields.items():
        if info.exclude:
            continue
        python_type, nullable = _unwrap_optional(info.annotation)
        python_type = _storage_type(python_type)
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        sql_type = extra.get("sql") or DEFAULT_SQL_TYPES.get(python_type, "TEXT")
        columns.append(
            Column(
                field=field_name,
                name=field_name.lower(),
                sql_type=str(sql_type),
                python_type=python_type,
                nullable=nullable,
            )
        )
    return tuple(columns)


class TelemetryRecord(BaseModel):
    """
    Base class for every persisted record type.

    Subclasses declare a ``timestamp`` field typed ``Timestamp``. Set the
    ``table_name`` class attribute to override the derived resource name.

    Every datetime field is normalized to aware UTC on validation, and the
    timestamp field rejects the zero time however it is annotated.
    """

    table_name: ClassVar[Optional[str]] = None
    timestamp_field: ClassVar[str] = "timestamp"

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if cls.timestamp_field not in cls.model_fields:
            raise TypeError(f"{cls.__name__} must declare a '{cls.timestamp_field}' field")
        if cls.model_fields[cls.timestamp_field].annotation is not datetime:
            raise TypeError(f"{cls.__name__}.{cls.timestamp_field} must be a datetime")

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value: Any, info: ValidationInfo) -> Any:
        if info.field_name == cls.timestamp_field:
            return _validate_timestamp(value)
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value

    @classmethod
    @functools.lru_cache(maxsize=None)
    def columns(cls) -> tuple[Column, ...]:
        return infer_columns(cls)

    @classmethod
    def resource_name(cls) -> str:
        name = cls.table_name or f"{cls.__name__.lower()}s"
        if not _IDENTIFIER.match(name):
            raise StoreConfigurationError(f"invalid table name {name!r} for {cls.__name__}")
        return name

    @classmethod
    def timestamp_column(cls) -> Column:
        for column in cls.columns():
            if column.field == cls.timestamp_field:
                return column
        raise StoreConfigurationError(f"{cls.__name__} does not persist its timestamp field")

    @classmethod
    def anonymize(
        cls, records: Sequence[TelemetryRecord], interval_start: datetime
    ) -> list[TelemetryRecord]:
        """Reduce one interval's records into aggregate records."""
        raise NotImplementedError(f"{cls.__name__} does not define an anonymization")

    @classmethod
    def has_anonymization(cls) -> bool:
        return cls.anonymize.__func__ is not TelemetryRecord.anonymize.__func__

    def get_timestamp(self) -> datetime:
        return getattr(self, self.timestamp_field)

    def column_values(self) -> tuple[Any, ...]:
        """Storage values in column order."""
        return tuple(column.encode(getattr(self, column.field)) for column in self.columns())


__all__ = [
    "Column",
    "DEFAULT_SQL_TYPES",
    "TelemetryRecord",
    "Timestamp",
    "ZERO_TIME",
    "ensure_utc",
    "sql_affinity",
    "format_timestamp",
    "infer_columns",
    "parse_timestamp",
]
