# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Caller-side lifecycle layer
# PURPOSE: Template authoring and instance transition services
# CREATED: 16 OCT 2026
# ============================================================================
"""
Services Module

Caller-side lifecycle around the pure engine. Services take and return
full snapshots; persistence and dispatch belong to the host application.

Usage:
    from services import InstanceService, TemplateService

    templates = TemplateService()
    template = templates.activate("client_intake")
    transition = InstanceService().instantiate(template, {"amount": 50})
"""

from .template_service import TemplateService
from .instance_service import InstanceService, InstanceTransition

__all__ = [
    "TemplateService",
    "InstanceService",
    "InstanceTransition",
]
