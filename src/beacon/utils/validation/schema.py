"""
Schema Validation Components for the telemetry SDK

This module provides JSON schema-based validation for the property maps that
travel with events, users and sessions. It supports:
- A property schema per limit (maximum number of entries, primitive values)
- Name validation for event names, categories, actions and property keys
- Comprehensive validation reporting through ValidationResult
- Raising helpers used by the stores and the event factory

Property maps are validated as a whole: every violation is collected, and a
single ValidationError is raised before any caller mutates state.
"""

from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft7Validator

from ...core.constants import NAME_PATTERN
from ...core.exceptions import ValidationError
from .base import RegexRule, RequiredRule, ValidationResult

PRIMITIVE_TYPES = ["string", "number", "boolean", "null"]

_name_rule = RegexRule(NAME_PATTERN, "must be alphanumeric with underscores and hyphens")
_required_rule = RequiredRule("is required and must be a non-empty string")


def build_property_schema(max_properties: int) -> Dict[str, Any]:
    """
    Build the JSON schema for a property map.

    Args:
        max_properties: Maximum number of entries allowed in the map

    Returns:
        JSON schema definition as a dictionary
    """
    return {
        "type": "object",
        "maxProperties": max_properties,
        "additionalProperties": {"type": PRIMITIVE_TYPES},
    }


class PropertySchemaValidator:
    """
    JSON Schema-based validator for property maps.

    Validators are compiled once per limit and cached, since the same three
    limits (event, user, session) are checked on every call.

    Attributes:
        validators (Dict[int, Draft7Validator]): Compiled validators by limit
    """

    def __init__(self):
        self.validators: Dict[int, Draft7Validator] = {}

    def _get_validator(self, max_properties: int) -> Draft7Validator:
        if max_properties not in self.validators:
            schema = build_property_schema(max_properties)
            Draft7Validator.check_schema(schema)
            self.validators[max_properties] = Draft7Validator(schema)
        return self.validators[max_properties]

    def validate(
        self, properties: Any, max_properties: int, field_name: str = "properties"
    ) -> ValidationResult:
        """
        Validate a property map.

        Keys must match the name pattern; values must be a string, number,
        boolean or null; the map may hold at most ``max_properties`` entries.

        Args:
            properties: Property map to validate
            max_properties: Maximum number of entries
            field_name: Name used to prefix error messages

        Returns:
            ValidationResult containing validation details and any errors
        """
        errors: List[str] = []

        if not isinstance(properties, Mapping):
            errors.append(f"{field_name} must be a mapping")
            return ValidationResult(is_valid=False, errors=errors, warnings=[])

        instance = dict(properties)
        for key in instance:
            if not _name_rule.validate(key):
                errors.append(f"Invalid property key {key!r} in {field_name}: {_name_rule.error_message}")

        # Non-string keys are reported above; the schema only sees string keys
        string_keyed = {k: v for k, v in instance.items() if isinstance(k, str)}
        if len(string_keyed) <= max_properties < len(instance):
            errors.append(f"{field_name} exceed maximum limit of {max_properties}")

        for error in self._get_validator(max_properties).iter_errors(string_keyed):
            if error.validator == "maxProperties":
                errors.append(f"{field_name} exceed maximum limit of {max_properties}")
            elif error.validator == "type" and error.path:
                key = error.path[0]
                errors.append(
                    f"Invalid property value for key {key!r} in {field_name}: "
                    "values must be strings, numbers, booleans, or null"
                )
            else:
                errors.append(f"{field_name}: {error.message}")

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=[],
            context={"field": field_name, "count": len(instance), "limit": max_properties},
        )


_property_validator = PropertySchemaValidator()


def ensure_valid_properties(
    properties: Optional[Mapping[str, Any]],
    max_properties: int,
    field_name: str = "properties",
) -> Dict[str, Any]:
    """
    Validate a property map and return a plain-dict copy of it.

    Args:
        properties: Property map to validate (None is treated as empty)
        max_properties: Maximum number of entries
        field_name: Name used to prefix error messages

    Returns:
        A new dictionary with the validated entries

    Raises:
        ValidationError: If any key, value or the entry count is invalid
    """
    if properties is None:
        return {}
    result = _property_validator.validate(properties, max_properties, field_name)
    if not result.is_valid:
        raise ValidationError("; ".join(result.errors), result.errors)
    return dict(properties)


def ensure_valid_name(value: Any, field_name: str = "name") -> str:
    """
    Validate an event name (or category, action, source).

    Raises:
        ValidationError: If the value is empty or contains illegal characters
    """
    if not _required_rule.validate(value) or not isinstance(value, str):
        raise ValidationError(f"Event {field_name} {_required_rule.error_message}")
    if not _name_rule.validate(value):
        raise ValidationError(f"Event {field_name} {_name_rule.error_message}: {value!r}")
    return value


def ensure_non_empty(value: Any, field_name: str) -> str:
    """
    Validate that a value is a non-empty string (user ids, urls, elements).

    Raises:
        ValidationError: If the value is not a non-empty string
    """
    if not isinstance(value, str) or not _required_rule.validate(value):
        raise ValidationError(f"{field_name} {_required_rule.error_message}")
    return value
