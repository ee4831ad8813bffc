"""
Validation package for the telemetry SDK.

This package provides validation utilities and rules for ensuring that event
names, property maps and identifiers meet the limits enforced by the collector.
"""

from .base import (
    ValidationResult,
    ValidationRule,
    RequiredRule,
    TypeRule,
    RangeRule,
    RegexRule,
    DataclassRule,
    validate_dataclass,
)
from .schema import (
    PropertySchemaValidator,
    build_property_schema,
    ensure_non_empty,
    ensure_valid_name,
    ensure_valid_properties,
)

__all__ = [
    "ValidationResult",
    "ValidationRule",
    "RequiredRule",
    "TypeRule",
    "RangeRule",
    "RegexRule",
    "DataclassRule",
    "validate_dataclass",
    "PropertySchemaValidator",
    "build_property_schema",
    "ensure_non_empty",
    "ensure_valid_name",
    "ensure_valid_properties",
]
