"""
Job parameters - the identity key and runtime input of a launch.

A ParameterSet is an immutable mapping of key -> JobParameter. Two launches
with equal parameter sets address the same job instance, which is what the
restart semantics of an executor hang on.

Command-line notation:
    key(type)=value

    run.date(date)=2024-03-01
    batch.size(long)=500
    ratio(double)=0.25
    label=nightly            (type defaults to string)
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional


class ParameterType(str, Enum):
    """Supported parameter value types."""
    STRING = "string"
    LONG = "long"
    DOUBLE = "double"
    DATE = "date"


@dataclass(frozen=True)
class JobParameter:
    """
    A single typed parameter value.

    Attributes:
        value: The parameter value (str, int, float or datetime)
        type: The declared ParameterType; the value must match it
    """
    value: Any
    type: ParameterType

    def __post_init__(self):
        kind = ParameterType(self.type)
        object.__setattr__(self, "type", kind)
        value = self.value

        if kind == ParameterType.STRING:
            if not isinstance(value, str):
                raise TypeError(f"string parameter requires str, got {type(value).__name__}")
        elif kind == ParameterType.LONG:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"long parameter requires int, got {type(value).__name__}")
        elif kind == ParameterType.DOUBLE:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"double parameter requires float, got {type(value).__name__}")
            object.__setattr__(self, "value", float(value))
        elif kind == ParameterType.DATE:
            if isinstance(value, datetime):
                pass
            elif isinstance(value, date):
                object.__setattr__(self, "value", datetime(value.year, value.month, value.day))
            else:
                raise TypeError(f"date parameter requires datetime, got {type(value).__name__}")

    @classmethod
    def of(cls, value: Any) -> "JobParameter":
        """
        Build a JobParameter, inferring the type from the Python value.

        Raises:
            TypeError: If the value has no matching ParameterType (bool included)
        """
        if isinstance(value, JobParameter):
            return value
        if isinstance(value, bool):
            raise TypeError("bool is not a supported parameter type")
        if isinstance(value, str):
            return cls(value, ParameterType.STRING)
        if isinstance(value, int):
            return cls(value, ParameterType.LONG)
        if isinstance(value, float):
            return cls(value, ParameterType.DOUBLE)
        if isinstance(value, (datetime, date)):
            return cls(value, ParameterType.DATE)
        raise TypeError(f"Unsupported parameter value type: {type(value).__name__}")

    def to_text(self) -> str:
        """Render the value the way parse_parameter() reads it back."""
        if self.type == ParameterType.DATE:
            return self.value.isoformat()
        return str(self.value)


class ParameterSet(Mapping):
    """
    Immutable mapping of parameter key -> JobParameter.

    Equality and hashing cover every key and typed value, so a ParameterSet
    can be used directly as (part of) a job-instance key.
    """

    __slots__ = ("_parameters",)

    def __init__(self, parameters: Optional[Mapping[str, JobParameter]] = None):
        params = dict(parameters or {})
        for key, param in params.items():
            if not isinstance(key, str) or not key:
                raise ValueError(f"Parameter keys must be non-empty strings, got {key!r}")
            if not isinstance(param, JobParameter):
                raise TypeError(
                    f"Parameter '{key}' must be a JobParameter, got {type(param).__name__}. "
                    "Use ParameterSet.from_values() for raw values."
                )
        self._parameters = MappingProxyType(params)

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> "ParameterSet":
        """Build a ParameterSet from raw values, inferring each type."""
        return cls({key: JobParameter.of(value) for key, value in values.items()})

    @classmethod
    def empty(cls) -> "ParameterSet":
        return cls()

    def __getitem__(self, key: str) -> JobParameter:
        return self._parameters[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return dict(self._parameters) == dict(other._parameters)

    def __hash__(self) -> int:
        return hash(frozenset(self._parameters.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={p.value!r}" for k, p in self._parameters.items())
        return f"ParameterSet({inner})"

    def _get_typed(self, key: str, kind: ParameterType, default: Any) -> Any:
        param = self._parameters.get(key)
        if param is None:
            return default
        if param.type != kind:
            raise TypeError(f"Parameter '{key}' is {param.type.value}, not {kind.value}")
        return param.value

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._get_typed(key, ParameterType.STRING, default)

    def get_long(self, key: str, default: Optional[int] = None) -> Optional[int]:
        return self._get_typed(key, ParameterType.LONG, default)

    def get_double(self, key: str, default: Optional[float] = None) -> Optional[float]:
        return self._get_typed(key, ParameterType.DOUBLE, default)

    def get_date(self, key: str, default: Optional[datetime] = None) -> Optional[datetime]:
        return self._get_typed(key, ParameterType.DATE, default)

    def merged(self, other: Mapping[str, Any]) -> "ParameterSet":
        """Return a new set with other's entries added (other wins on conflict)."""
        combined = dict(self._parameters)
        for key, value in other.items():
            combined[key] = JobParameter.of(value)
        return ParameterSet(combined)

    def to_dict(self) -> dict[str, Any]:
        """Raw values keyed by parameter name."""
        return {key: param.value for key, param in self._parameters.items()}

    def to_properties(self) -> list[str]:
        """Render as key(type)=value strings, sorted by key."""
        return [
            f"{key}({self._parameters[key].type.value})={self._parameters[key].to_text()}"
            for key in sorted(self._parameters)
        ]


# key(type)=value, the (type) part optional
PARAMETER_PATTERN = re.compile(r"^(?P<key>[^()=\s][^()=]*?)(?:\((?P<type>[a-z]+)\))?=(?P<value>.*)$")


def parse_parameter(text: str) -> tuple[str, JobParameter]:
    """
    Parse one key(type)=value string.

    Args:
        text: e.g. "run.date(date)=2024-03-01" or "label=nightly"

    Returns:
        Tuple of (key, JobParameter)

    Raises:
        ValueError: If the text is malformed, the type unknown or the value
            does not convert to the declared type
    """
    match = PARAMETER_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Malformed parameter (expected key(type)=value): {text!r}")

    key = match.group("key").strip()
    type_name = match.group("type") or ParameterType.STRING.value
    raw = match.group("value")

    try:
        kind = ParameterType(type_name)
    except ValueError:
        valid = ", ".join(t.value for t in ParameterType)
        raise ValueError(f"Unknown parameter type '{type_name}' in {text!r} (valid: {valid})")

    try:
        if kind == ParameterType.LONG:
            value: Any = int(raw)
        elif kind == ParameterType.DOUBLE:
            value = float(raw)
        elif kind == ParameterType.DATE:
            value = datetime.fromisoformat(raw)
        else:
            value = raw
    except ValueError as e:
        raise ValueError(f"Cannot convert {raw!r} to {kind.value} in {text!r}: {e}") from e

    return key, JobParameter(value, kind)


def parse_parameters(texts: Iterable[str]) -> ParameterSet:
    """Parse several key(type)=value strings into a ParameterSet (last key wins)."""
    params: dict[str, JobParameter] = {}
    for text in texts:
        key, param = parse_parameter(text)
        params[key] = param
    return ParameterSet(params)
