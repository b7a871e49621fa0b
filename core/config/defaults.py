# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Default configuration values
# PURPOSE: Centralized engine policy knobs with environment overrides
# CREATED: 14 OCT 2026
# ============================================================================
"""
Configuration Defaults

Policy decisions the engine leaves open are configured here rather than
hard-coded in the components:

- Maximum compound condition nesting depth
- Whether a SKIPPED predecessor satisfies ALL dependency logic
- Whether steps that can never become ready are marked SKIPPED
- Whether a SWITCH step must declare a default branch
- Reserved context key suffixes for step outcomes and states

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ConditionDefaults:
    """
    Defaults for condition evaluation and validation.
    """
    # Compound nesting depth cap (top-level compound = depth 1)
    max_nesting_depth: int = 3

    # Reserved context keys: "<stepId>.outcome" and "<stepId>.state"
    outcome_key_suffix: str = ".outcome"
    state_key_suffix: str = ".state"

    def outcome_key(self, step_id: str) -> str:
        return f"{step_id}{self.outcome_key_suffix}"

    def state_key(self, step_id: str) -> str:
        return f"{step_id}{self.state_key_suffix}"

    @classmethod
    def from_env(cls) -> "ConditionDefaults":
        """Create from environment variables."""
        return cls(
            max_nesting_depth=int(os.getenv("WORKFLOW_MAX_CONDITION_DEPTH", 3)),
            outcome_key_suffix=os.getenv("WORKFLOW_OUTCOME_SUFFIX", ".outcome"),
            state_key_suffix=os.getenv("WORKFLOW_STATE_SUFFIX", ".state"),
        )


@dataclass(frozen=True)
class ReadinessDefaults:
    """
    Defaults for readiness propagation and branch routing.
    """
    # SKIPPED never satisfies ALL unless explicitly enabled
    skipped_satisfies_all: bool = False

    # Mark steps whose dependency logic can no longer pass as SKIPPED
    skip_unreachable_steps: bool = True

    # Treat a SWITCH without default branch as a validation error
    require_switch_default: bool = False

    @classmethod
    def from_env(cls) -> "ReadinessDefaults":
        """Create from environment variables."""
        return cls(
            skipped_satisfies_all=_env_bool("WORKFLOW_SKIPPED_SATISFIES_ALL", False),
            skip_unreachable_steps=_env_bool("WORKFLOW_SKIP_UNREACHABLE", True),
            require_switch_default=_env_bool("WORKFLOW_REQUIRE_SWITCH_DEFAULT", False),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass(frozen=True)
class EngineDefaults:
    """Container for all default configurations."""
    conditions: ConditionDefaults = field(default_factory=ConditionDefaults)
    readiness: ReadinessDefaults = field(default_factory=ReadinessDefaults)

    @classmethod
    def from_env(cls) -> "EngineDefaults":
        """Create all defaults from environment variables."""
        return cls(
            conditions=ConditionDefaults.from_env(),
            readiness=ReadinessDefaults.from_env(),
        )


_defaults: Optional[EngineDefaults] = None


def get_defaults() -> EngineDefaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = EngineDefaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ConditionDefaults",
    "ReadinessDefaults",
    "EngineDefaults",
    "get_defaults",
    "reset_defaults",
]
