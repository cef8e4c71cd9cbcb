"""Error types raised by the persistence operations.

Every failure an operation can report is a TrackerError subclass. Each error
knows its machine-readable code and can render itself as a JSON-safe payload
via to_error_response(), so callers never need to inspect driver exceptions.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

from dsptracker.core.time_utils import isoformat_utc

ISO_FORMAT = "yyyy-mm-ddTHH:MM:ss[.SSS]Z"
INTERNAL_ERROR_MESSAGE = "An Internal Server Error occurred."


class ObjectKind(str, enum.Enum):
    SAVE = "save"
    SOLAR_SYSTEM = "solar-system"
    STAR = "star"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")

    def __str__(self) -> str:
        return self.label


def json_value(value: Any) -> Any:
    """Convert ids, timestamps and enums into JSON-safe primitives."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return isoformat_utc(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    return str(json_value(value))


@dataclass(frozen=True)
class FieldValue:
    name: str
    value: Any = None

    def __str__(self) -> str:
        return f"{self.name} `{format_value(self.value)}`"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": json_value(self.value)}


@dataclass(frozen=True)
class Bound:
    value: Union[int, float]
    inclusive: bool = True

    @classmethod
    def including(cls, value: Union[int, float]) -> "Bound":
        return cls(value, True)

    @classmethod
    def excluding(cls, value: Union[int, float]) -> "Bound":
        return cls(value, False)

    def __str__(self) -> str:
        return f">= {self.value}" if self.inclusive else f"> {self.value}"

    def upper(self) -> str:
        return f"<= {self.value}" if self.inclusive else f"< {self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "inclusive": self.inclusive}


@dataclass(frozen=True)
class AllowedValues:
    """Describes what a rejected field would have accepted.

    `type` is one of Choice, Integer, Float, DateTime or String; only the
    attributes relevant to that type are set.
    """

    type: str
    values: Optional[List[Any]] = None
    min: Optional[Bound] = None
    max: Optional[Bound] = None
    format: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None

    @classmethod
    def choice(cls, values: Iterable[Any]) -> "AllowedValues":
        return cls("Choice", values=[json_value(v) for v in values])

    @classmethod
    def integer(cls, min: Optional[Bound] = None, max: Optional[Bound] = None) -> "AllowedValues":
        return cls("Integer", min=min, max=max)

    @classmethod
    def number(cls, min: Optional[Bound] = None, max: Optional[Bound] = None) -> "AllowedValues":
        return cls("Float", min=min, max=max)

    @classmethod
    def datetime_iso(cls) -> "AllowedValues":
        return cls("DateTime", format=ISO_FORMAT)

    @classmethod
    def string(cls, min_length: Optional[int] = None, max_length: Optional[int] = None) -> "AllowedValues":
        if min_length is None and max_length is None:
            raise ValueError("a string range needs min_length or max_length")
        return cls("String", min_length=min_length, max_length=max_length)

    def __str__(self) -> str:
        if self.type == "Choice":
            return "Allowed values are: " + ", ".join(format_value(v) for v in self.values or [])
        if self.type in ("Integer", "Float"):
            noun = "an integer" if self.type == "Integer" else "a number"
            if self.min is not None and self.max is not None:
                return f"Value must be {noun} {self.min} and {self.max.upper()}."
            if self.min is not None:
                return f"Value must be {noun} {self.min}."
            if self.max is not None:
                return f"Value must be {noun} {self.max.upper()}."
            return f"Value must be {noun}."
        if self.type == "DateTime":
            return f"Must be a date time in the format `{self.format}`."
        if self.min_length is not None and self.max_length is not None:
            return f"Value must be between {self.min_length} and {self.max_length} characters long."
        if self.max_length is not None:
            return f"Value must be at most {self.max_length} characters long."
        return f"Value must be at least {self.min_length} characters long."

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type}
        if self.type == "Choice":
            out["values"] = list(self.values or [])
        elif self.type in ("Integer", "Float"):
            if self.min is not None:
                out["min"] = self.min.to_dict()
            if self.max is not None:
                out["max"] = self.max.to_dict()
        elif self.type == "DateTime":
            out["format"] = self.format
        else:
            if self.min_length is not None:
                out["min_length"] = self.min_length
            if self.max_length is not None:
                out["max_length"] = self.max_length
        return out


def _format_keys(keys: Iterable[FieldValue]) -> str:
    return ", ".join(str(k) for k in keys)


class TrackerError(Exception):
    """Base class for every error reported by the tracker operations."""

    error_code = "InternalServerError"
    is_internal = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_error_response(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": INTERNAL_ERROR_MESSAGE if self.is_internal else self.message,
        }
        out.update(self._details())
        return out

    def _details(self) -> Dict[str, Any]:
        return {}


class _ObjectError(TrackerError):
    """An error about a specific object identified by one or more key fields."""

    template = "{object} {keys}"

    def __init__(self, object_kind: ObjectKind, keys: Union[FieldValue, Iterable[FieldValue]]) -> None:
        if isinstance(keys, FieldValue):
            keys = [keys]
        self.object_kind = object_kind
        self.keys: List[FieldValue] = list(keys)
        super().__init__(self.template.format(object=object_kind.label, keys=_format_keys(self.keys)))

    def _details(self) -> Dict[str, Any]:
        return {
            "object": self.object_kind.value,
            "keys": [k.to_dict() for k in self.keys],
        }


class NotFoundError(_ObjectError):
    error_code = "NotFound"
    is_internal = False
    template = "No {object} exists with {keys}."

    def unexpected(self) -> "UnexpectedNotFoundError":
        """Re-classify as internal: the object was required to exist."""
        return UnexpectedNotFoundError(self.object_kind, self.keys)


class UnexpectedNotFoundError(_ObjectError):
    template = "Unexpectedly did not find {object} with {keys}."

    def _details(self) -> Dict[str, Any]:
        return {}


class DuplicateError(_ObjectError):
    error_code = "Duplicate"
    is_internal = False
    template = "A {object} with the {keys} already exists."


class ConcurrentUpdateError(_ObjectError):
    error_code = "ConcurrentUpdate"
    is_internal = False
    template = "Another transaction has already updated the {object} with {keys}. Please try again."


class InvalidFieldValueError(TrackerError):
    error_code = "InvalidFieldValue"
    is_internal = False

    def __init__(self, field: FieldValue, allowed_values: AllowedValues) -> None:
        self.field = field
        self.allowed_values = allowed_values
        super().__init__(
            f"The value `{format_value(field.value)}` for the field {field.name} is invalid. {allowed_values}"
        )

    def _details(self) -> Dict[str, Any]:
        return {"field": self.field.to_dict(), "allowed_values": self.allowed_values.to_dict()}


class MissingRequiredFieldError(TrackerError):
    error_code = "MissingRequiredField"
    is_internal = False

    def __init__(self, field_name: str, allowed_values: AllowedValues) -> None:
        self.field = FieldValue(field_name, None)
        self.allowed_values = allowed_values
        super().__init__(f"Missing required field {field_name}. {allowed_values}")

    def _details(self) -> Dict[str, Any]:
        return {"field": self.field.to_dict(), "allowed_values": self.allowed_values.to_dict()}


class DatabaseError(TrackerError):
    """A database failure with no domain meaning (wraps the original exception)."""

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(str(original))


__all__ = [
    "ObjectKind",
    "FieldValue",
    "Bound",
    "AllowedValues",
    "TrackerError",
    "NotFoundError",
    "UnexpectedNotFoundError",
    "DuplicateError",
    "ConcurrentUpdateError",
    "InvalidFieldValueError",
    "MissingRequiredFieldError",
    "DatabaseError",
    "format_value",
    "json_value",
]
