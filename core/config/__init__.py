# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 14 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the workflow engine.
"""

from core.config.defaults import (
    ConditionDefaults,
    ReadinessDefaults,
    EngineDefaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "ConditionDefaults",
    "ReadinessDefaults",
    "EngineDefaults",
    "get_defaults",
    "reset_defaults",
]
