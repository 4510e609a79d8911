"""Validation errors raised while turning request parameters into queries.

Every error here describes a problem with the request itself. The HTTP layer
maps them to 400-class responses using the message, which always names the
offending field or value.
"""

from __future__ import annotations

from typing import Any


class ParameterValidationError(ValueError):
    """Base class for user-facing parameter validation failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedParameterError(ParameterValidationError):
    """Raised when a parameter is not recognized for the concept type."""

    def __init__(self, field: str, concept_type: str) -> None:
        super().__init__(f"Parameter [{field}] was not recognized for {concept_type} searches.")
        self.field = field
        self.concept_type = concept_type


class InvalidSortFieldError(ParameterValidationError):
    def __init__(self, field: str, concept_type: str | None) -> None:
        target = f"{concept_type}s" if concept_type else "this search"
        super().__init__(f"The sort key [{field}] is not a valid field for sorting {target}.")
        self.field = field
        self.concept_type = concept_type


class InvalidOptionValueError(ParameterValidationError):
    def __init__(self, field: str, option: str, value: Any) -> None:
        super().__init__(
            f"Parameter [options[{field}][{option}]] must take value of true, false, or unset, "
            f"but was [{value}]."
        )
        self.field = field
        self.option = option
        self.value = value


class MalformedFieldNameError(ParameterValidationError):
    def __init__(self, field_name: str) -> None:
        super().__init__(
            f"Field name [{field_name}] must be of the form <field>[<index>][<subfield>]."
        )
        self.field_name = field_name


class NumericRangeParseError(ParameterValidationError):
    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        message = f"Parameter [{field}] value [{value}] is not a valid numeric range."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidDateError(ParameterValidationError):
    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        message = f"Parameter [{field}] value [{value}] is not a valid date range."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidSpatialError(ParameterValidationError):
    """Raised for spatial parameter values that do not describe a valid shape."""


class InvalidParameterValueError(ParameterValidationError):
    """Raised for structurally invalid values of otherwise known parameters."""


class UnsupportedResultFormatError(ParameterValidationError):
    """Raised when a requested result format is not supported."""


class MixedArityParameterError(ParameterValidationError):
    def __init__(self, param: str) -> None:
        super().__init__(
            f"Parameter [{param}] may be either single valued or multivalued, but not both."
        )
        self.param = param
