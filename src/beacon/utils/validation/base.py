"""
Validation rules for the telemetry SDK.

Caller input reaches the SDK as loosely typed values: event names, numeric
event values, configuration numbers, identifiers. The rules in this module
each answer one yes/no question about such a value and carry the message to
report when the answer is no. Callers combine them and raise their own
ValidationError or ConfigurationError.

Record models use ``validate_dataclass`` instead, which checks every field
against its annotation once the record is built.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Tuple,
    Type,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)


@dataclass
class ValidationResult:
    """
    Outcome of validating one value, such as a property map.

    Attributes:
        is_valid (bool): True when no error was found
        errors (List[str]): Human-readable failures, in discovery order
        warnings (List[str]): Non-fatal findings
        context (Optional[Dict[str, Any]]): Extra facts (field name, counts, limits)
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    context: Optional[Dict[str, Any]] = None


class ValidationRule:
    """
    A single yes/no check.

    Attributes:
        error_message (str): Reported by the caller when the check fails
    """

    def __init__(self, error_message: str):
        self.error_message = error_message

    def validate(self, value: Any) -> bool:
        raise NotImplementedError(f"{type(self).__name__} does not implement validate()")


class RequiredRule(ValidationRule):
    """Value is present: not None, and not blank when it is a string."""

    def validate(self, value: Any) -> bool:
        if value is None:
            return False
        return not isinstance(value, str) or value.strip() != ""


class TypeRule(ValidationRule):
    """
    Value is an instance of the expected type(s).

    ``True`` and ``False`` only pass when ``bool`` itself is expected.

    Attributes:
        expected_type: A type or a tuple of types
    """

    def __init__(self, expected_type: Union[Type, Tuple[Type, ...]], error_message: str):
        super().__init__(error_message)
        self.expected_type = expected_type

    def validate(self, value: Any) -> bool:
        if not isinstance(value, self.expected_type):
            return False
        if isinstance(value, bool):
            allowed = (
                self.expected_type
                if isinstance(self.expected_type, tuple)
                else (self.expected_type,)
            )
            return bool in allowed
        return True


class RangeRule(ValidationRule):
    """
    Value is a real number within inclusive bounds.

    A bound left as None is not checked.
    """

    def __init__(
        self,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        error_message: str = "",
    ):
        super().__init__(error_message)
        self.min_value = min_value
        self.max_value = max_value

    def validate(self, value: Any) -> bool:
        if not TypeRule((int, float), self.error_message).validate(value):
            return False
        above_min = self.min_value is None or value >= self.min_value
        below_max = self.max_value is None or value <= self.max_value
        return above_min and below_max


class RegexRule(ValidationRule):
    """
    String matched in full by a pattern.

    Anchors in the pattern are optional; a trailing newline never matches.
    """

    def __init__(self, pattern: str, error_message: str):
        super().__init__(error_message)
        self.pattern = re.compile(pattern.lstrip("^").rstrip("$"))

    def validate(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        return self.pattern.fullmatch(value) is not None


class DataclassRule(ValidationRule):
    """
    Record whose fields all agree with their annotations.

    Understands the annotations used by the SDK models: plain classes,
    ``Optional``/``Union``, ``List``, ``Dict``/``Mapping``, fixed-length ``Tuple`` and
    ``Any``. An ``int`` is accepted where a ``float`` is declared; a ``bool``
    is not.
    """

    def __init__(self, dataclass_type: Type, error_message: str = ""):
        super().__init__(error_message or f"Invalid field types in {dataclass_type.__name__}")
        self.dataclass_type = dataclass_type
        self.type_hints = get_type_hints(dataclass_type)

    def _matches(self, value: Any, hint: Any) -> bool:
        if hint is Any:
            return True

        origin = get_origin(hint)
        args = get_args(hint)

        if origin is Union:
            return any(
                value is None if arm is type(None) else self._matches(value, arm) for arm in args
            )
        if value is None:
            return False
        if hint is float:
            return TypeRule((int, float), "").validate(value)
        if hint is datetime:
            return isinstance(value, datetime)

        if origin is list:
            return isinstance(value, list) and all(
                self._matches(item, args[0]) for item in value if args
            )
        if origin in (dict, Mapping):
            if not isinstance(value, origin):
                return False
            if not args:
                return True
            return all(
                self._matches(k, args[0]) and self._matches(v, args[1]) for k, v in value.items()
            )
        if origin is tuple:
            if not isinstance(value, tuple):
                return False
            return not args or (
                len(args) == len(value) and all(map(self._matches, value, args))
            )

        try:
            return isinstance(value, origin or hint)
        except TypeError:
            # Annotations isinstance cannot check (e.g. Callable[..., Any])
            return True

    def validate(self, value: Any) -> bool:
        if not isinstance(value, self.dataclass_type):
            return False
        return all(
            self._matches(getattr(value, name), hint)
            for name, hint in self.type_hints.items()
            if not name.startswith("_")
        )


def validate_dataclass(cls: Type[Any]) -> Type[Any]:
    """
    Class decorator that type-checks a dataclass after construction.

    The check runs after the class's own ``__post_init__``, so records that
    copy or coerce fields there are checked in their final form.

    Raises:
        TypeError: On construction, if any field disagrees with its annotation
    """
    own_post_init = getattr(cls, "__post_init__", None)
    rule = None

    def __post_init__(self):
        nonlocal rule
        if own_post_init is not None:
            own_post_init(self)
        if rule is None:
            rule = DataclassRule(cls)
        if not rule.validate(self):
            raise TypeError(rule.error_message)

    cls.__post_init__ = __post_init__
    return cls
