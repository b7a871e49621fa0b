# ============================================================================
# CONTEXT SCHEMA MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core model - Runtime context contract of a template
# PURPOSE: Declare expected context fields, defaults and validation rules
# LAST_REVIEWED: 15 OCT 2026
# EXPORTS: ContextFieldType, ContextFieldDefinition, ContextSchema,
#          ContextFieldError
# DEPENDENCIES: pydantic, re
# ============================================================================
"""
Context Schema

A template may declare the runtime context it expects (contact/matter
attributes that conditions read). The schema is checked when an instance
is created so that conditions do not silently fail-closed on a typo.

    fields:
      amount: {type: number, label: Amount, required: true, min: 0}
      matter_type: {type: string, label: Matter type, default: "civil"}
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ContextFieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ContextFieldError(BaseModel):
    """One problem with one context value."""
    field: str
    message: str
    code: str


class ContextFieldDefinition(BaseModel):
    """Expected type and constraints of a single context field."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    type: ContextFieldType
    label: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    default: Any = None

    # String
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    pattern: Optional[str] = None

    # Number
    min: Optional[float] = None
    max: Optional[float] = None

    # Array
    min_items: Optional[int] = Field(default=None, ge=0)
    max_items: Optional[int] = Field(default=None, ge=0)

    def validate_value(self, key: str, value: Any) -> List[ContextFieldError]:
        """Validate a context value against this definition."""
        label = self.label or key
        errors: List[ContextFieldError] = []

        if value is None or value == "":
            if self.required:
                errors.append(ContextFieldError(
                    field=key, message=f"{label} is required", code="REQUIRED",
                ))
            return errors

        if _type_of(value) != self.type:
            errors.append(ContextFieldError(
                field=key,
                message=f"{label} must be a {self.type.value}",
                code="INVALID_TYPE",
            ))
            return errors

        if self.type == ContextFieldType.STRING:
            if self.min_length is not None and len(value) < self.min_length:
                errors.append(ContextFieldError(
                    field=key,
                    message=f"{label} must be at least {self.min_length} characters",
                    code="MIN_LENGTH",
                ))
            if self.max_length is not None and len(value) > self.max_length:
                errors.append(ContextFieldError(
                    field=key,
                    message=f"{label} must be at most {self.max_length} characters",
                    code="MAX_LENGTH",
                ))
            if self.pattern and not re.search(self.pattern, value):
                errors.append(ContextFieldError(
                    field=key, message=f"{label} format is invalid", code="INVALID_PATTERN",
                ))

        elif self.type == ContextFieldType.NUMBER:
            if self.min is not None and value < self.min:
                errors.append(ContextFieldError(
                    field=key, message=f"{label} must be at least {self.min}", code="MIN_VALUE",
                ))
            if self.max is not None and value > self.max:
                errors.append(ContextFieldError(
                    field=key, message=f"{label} must be at most {self.max}", code="MAX_VALUE",
                ))

        elif self.type == ContextFieldType.ARRAY:
            if self.min_items is not None and len(value) < self.min_items:
                errors.append(ContextFieldError(
                    field=key,
                    message=f"{label} must have at least {self.min_items} items",
                    code="MIN_ITEMS",
                ))
            if self.max_items is not None and len(value) > self.max_items:
                errors.append(ContextFieldError(
                    field=key,
                    message=f"{label} must have at most {self.max_items} items",
                    code="MAX_ITEMS",
                ))

        return errors


class ContextSchema(BaseModel):
    """Set of context fields a template expects."""
    model_config = ConfigDict(frozen=True)

    version: int = Field(default=1, ge=1)
    fields: Dict[str, ContextFieldDefinition] = Field(default_factory=dict)

    def apply_defaults(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of context with defaults filled for absent keys."""
        result = dict(context)
        for key, definition in self.fields.items():
            if key not in result and definition.default is not None:
                result[key] = definition.default
        return result

    def validate_context(self, context: Dict[str, Any]) -> List[ContextFieldError]:
        """Validate every declared field. Undeclared keys are allowed."""
        errors: List[ContextFieldError] = []
        for key, definition in self.fields.items():
            errors.extend(definition.validate_value(key, context.get(key)))
        return errors


def _type_of(value: Any) -> ContextFieldType:
    if isinstance(value, bool):
        return ContextFieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return ContextFieldType.NUMBER
    if isinstance(value, str):
        return ContextFieldType.STRING
    if isinstance(value, (list, tuple)):
        return ContextFieldType.ARRAY
    return ContextFieldType.OBJECT


__all__ = [
    "ContextFieldType",
    "ContextFieldDefinition",
    "ContextFieldError",
    "ContextSchema",
]
