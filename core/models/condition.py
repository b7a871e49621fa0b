# ============================================================================
# CONDITION MODELS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core model - Recursive predicate definitions
# PURPOSE: Simple/compound conditions and SWITCH branches
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: SimpleCondition, CompoundCondition, Condition, SwitchBranch
# DEPENDENCIES: pydantic
# ============================================================================
"""
Condition Models

A Condition is a tagged variant:

    {"kind": "simple", "field": "amount", "operator": ">", "value": 100}
    {"kind": "compound", "operator": "AND", "conditions": [...]}

When "kind" is omitted it is inferred: a mapping with "conditions" is a
compound condition, anything else is simple.

Operators are kept as plain strings. Shape problems that are authoring
mistakes (unknown operator, compound with a single entry, excessive
nesting) are reported by the GraphValidator, not at parse time.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
)


class SimpleCondition(BaseModel):
    """Single predicate: context[field] <operator> value."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["simple"] = "simple"
    field: str = Field(..., min_length=1, description="Context key or dotted path")
    operator: str = Field(..., description="One of the recognised simple operators")
    value: Any = None

    @property
    def has_value(self) -> bool:
        """True when a value was supplied (an explicit null counts)."""
        return "value" in self.model_fields_set


class CompoundCondition(BaseModel):
    """AND/OR combination of two or more conditions."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["compound"] = "compound"
    operator: str = Field(
        ...,
        validation_alias=AliasChoices("operator", "logic"),
        description="AND or OR",
    )
    conditions: List["Condition"] = Field(default_factory=list)


def _condition_kind(value: Any) -> str:
    """Pick the union member for raw or already-built conditions."""
    if isinstance(value, dict):
        kind = value.get("kind") or value.get("type")
        if kind:
            return kind
        return "compound" if "conditions" in value else "simple"
    return getattr(value, "kind", "simple")


Condition = Annotated[
    Union[
        Annotated[SimpleCondition, Tag("simple")],
        Annotated[CompoundCondition, Tag("compound")],
    ],
    Discriminator(_condition_kind),
]

CompoundCondition.model_rebuild()

_CONDITION_ADAPTER: TypeAdapter = TypeAdapter(Condition)


def parse_condition(raw: Any) -> Condition:
    """Build a Condition from a raw dict (or return a built one as-is)."""
    if isinstance(raw, (SimpleCondition, CompoundCondition)):
        return raw
    return _CONDITION_ADAPTER.validate_python(raw)


class SwitchBranch(BaseModel):
    """
    A labeled branch of a SWITCH step.

    Branches are evaluated in declaration order; the first matching guard
    wins. A default branch has no guard and is taken when nothing matches.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field(..., min_length=1)
    condition: Optional[Condition] = None
    target: str = Field(
        ...,
        validation_alias=AliasChoices("target", "targetStepId", "target_step_id"),
    )
    default: bool = False


def iter_simple_conditions(condition: Condition):
    """Yield every SimpleCondition inside a (possibly nested) condition."""
    if condition.kind == "simple":
        yield condition
    else:
        for child in condition.conditions:
            yield from iter_simple_conditions(child)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "SimpleCondition",
    "CompoundCondition",
    "Condition",
    "SwitchBranch",
    "parse_condition",
    "iter_simple_conditions",
]
