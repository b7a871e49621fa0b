# ============================================================================
# TEMPLATE SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Service - Template authoring lifecycle
# PURPOSE: Load, register, validate, activate and version templates
# CREATED: 16 OCT 2026
# ============================================================================
"""
Template Service

Loads workflow templates from YAML/JSON files and manages their authoring
lifecycle:

    draft -> validated -> activated (immutable) -> new version (draft)

Validation is required for activation. An active template is never edited
or re-validated; changes go into a new version.

Template files are stored in the templates/ directory.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from core.errors import (
    TemplateImmutableError,
    TemplateNotFoundError,
    TemplateValidationFailed,
    WorkflowEngineError,
)
from core.logging import log_checkpoint, log_context
from core.models import TemplateValidationError, ValidationReport, WorkflowTemplate
from core.observability import get_metrics
from engine import WorkflowEngine, get_engine

logger = logging.getLogger(__name__)

TEMPLATE_FILE_PATTERNS = ("*.yaml", "*.yml", "*.json")


class TemplateService:
    """Service for loading and managing workflow templates."""

    def __init__(
        self,
        templates_dir: Optional[Union[str, Path]] = None,
        engine: Optional[WorkflowEngine] = None,
    ):
        """
        Initialize template service.

        Args:
            templates_dir: Directory containing template files.
                           Defaults to ./templates/
            engine: Engine used for validation (shared engine by default)
        """
        if templates_dir:
            self.templates_dir = Path(templates_dir)
        else:
            self.templates_dir = Path(__file__).parent.parent / "templates"

        self.engine = engine or get_engine()
        self._cache: Dict[str, WorkflowTemplate] = {}
        self._loaded = False

    # ------------------------------------------------------------------
    # LOADING
    # ------------------------------------------------------------------

    def load_all(self) -> int:
        """
        Load all templates from the templates directory.

        Files that fail to parse, or that declare an active template which
        fails validation, are logged and skipped.

        Returns:
            Number of templates loaded
        """
        self._loaded = True

        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return 0

        count = 0
        for pattern in TEMPLATE_FILE_PATTERNS:
            for path in sorted(self.templates_dir.glob(pattern)):
                try:
                    template = self.load_file(path)
                except (OSError, ValueError, yaml.YAMLError, WorkflowEngineError) as e:
                    logger.error(f"Failed to load {path}: {e}")
                    continue

                self._cache[template.template_id] = template
                count += 1
                logger.info(f"Loaded template: {template.template_id} v{template.version}")

        logger.info(f"Loaded {count} templates from {self.templates_dir}")
        return count

    def load_file(self, path: Union[str, Path]) -> WorkflowTemplate:
        """
        Load a template from a YAML or JSON file.

        Args:
            path: Path to template file

        Returns:
            WorkflowTemplate instance

        Raises:
            TemplateValidationFailed: If the file declares an active template
                that does not validate
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Template file {path} does not contain a mapping")

        # File name doubles as template id when none is given
        if "templateId" not in data and "template_id" not in data:
            data["templateId"] = path.stem
        template = WorkflowTemplate.model_validate(data)

        if template.is_active:
            errors = self.engine.validate_template(template)
            if errors:
                raise TemplateValidationFailed(errors, template.template_id)

        return template

    def reload(self) -> int:
        """
        Reload all templates from disk.

        Returns:
            Number of templates loaded
        """
        self._cache.clear()
        self._loaded = False
        return self.load_all()

    # ------------------------------------------------------------------
    # LOOKUP
    # ------------------------------------------------------------------

    def get(self, template_id: str) -> Optional[WorkflowTemplate]:
        """
        Get a template by ID.

        Args:
            template_id: Template identifier

        Returns:
            WorkflowTemplate or None if not found
        """
        if not self._loaded:
            self.load_all()

        return self._cache.get(template_id)

    def get_or_raise(self, template_id: str) -> WorkflowTemplate:
        """
        Get a template, raising if not found.

        Raises:
            TemplateNotFoundError if template not found
        """
        template = self.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id}")
        return template

    def list_all(self, active_only: bool = False) -> List[WorkflowTemplate]:
        """
        List all loaded templates.

        Args:
            active_only: Only return activated templates

        Returns:
            List of WorkflowTemplate instances
        """
        if not self._loaded:
            self.load_all()

        templates = list(self._cache.values())
        if active_only:
            templates = [t for t in templates if t.is_active]
        return templates

    # ------------------------------------------------------------------
    # AUTHORING
    # ------------------------------------------------------------------

    def register(self, template: WorkflowTemplate) -> WorkflowTemplate:
        """
        Register a template (draft, or active if it validates).

        Raises:
            TemplateImmutableError: If an active template already uses the id
            TemplateValidationFailed: If an active template does not validate
        """
        existing = self.get(template.template_id)
        if existing is not None and existing.is_active:
            raise TemplateImmutableError(
                f"Template {template.template_id} is active; create a new version instead"
            )

        if template.is_active:
            errors = self.engine.validate_template(template)
            if errors:
                raise TemplateValidationFailed(errors, template.template_id)

        self._cache[template.template_id] = template
        logger.info(f"Registered template: {template.template_id} v{template.version}")
        return template

    def update_draft(self, template: WorkflowTemplate) -> WorkflowTemplate:
        """
        Replace a draft with an edited copy.

        Raises:
            TemplateNotFoundError: If no template has this id
            TemplateImmutableError: If the stored template is active
        """
        existing = self.get_or_raise(template.template_id)
        if existing.is_active:
            raise TemplateImmutableError(
                f"Template {template.template_id} is active; create a new version instead"
            )
        if template.is_active:
            raise TemplateImmutableError(
                f"Template {template.template_id} must be activated through activate()"
            )

        self._cache[template.template_id] = template
        logger.debug(f"Updated draft template: {template.template_id}")
        return template

    def check(self, template_or_id: Union[WorkflowTemplate, str]) -> ValidationReport:
        """Validate a template, returning errors and authoring warnings."""
        template = self._resolve(template_or_id)
        return self.engine.check_template(template)

    def validate(self, template_or_id: Union[WorkflowTemplate, str]) -> List[TemplateValidationError]:
        """Validate a template; an empty list means it may be activated."""
        return self.check(template_or_id).errors

    def activate(self, template_id: str) -> WorkflowTemplate:
        """
        Validate and activate a draft.

        An already active template is returned unchanged.

        Raises:
            TemplateNotFoundError: If no template has this id
            TemplateValidationFailed: If validation finds any error
        """
        template = self.get_or_raise(template_id)
        if template.is_active:
            return template

        with log_context(template_id=template.template_id, template_version=template.version):
            report = self.engine.check_template(template)
            metrics = get_metrics()

            if not report.is_valid:
                metrics.counter("workflow.validation.failed")
                for error in report.errors:
                    metrics.counter("workflow.validation.failed", tags={"kind": error.kind.value})
                logger.warning(
                    f"Template {template_id} rejected: "
                    f"{', '.join(sorted({e.kind.value for e in report.errors}))}"
                )
                raise TemplateValidationFailed(report.errors, template_id)

            metrics.counter("workflow.validation.passed")
            for warning in report.warnings:
                logger.warning(f"Template {template_id}: {warning.message}")

            activated = template.activate()
            self._cache[template_id] = activated
            log_checkpoint("template_activated", {"version": activated.version}, logger=logger)

        return activated

    def new_version(self, template_id: str, new_template_id: Optional[str] = None) -> WorkflowTemplate:
        """
        Create a draft copy of a template with an incremented version.

        Args:
            template_id: Template to copy
            new_template_id: Optional id for the new draft

        Returns:
            The registered draft
        """
        template = self.get_or_raise(template_id)
        draft = template.new_version(new_template_id)
        self._cache[draft.template_id] = draft
        logger.info(f"Created template {draft.template_id} v{draft.version} from {template_id}")
        return draft

    def _resolve(self, template_or_id: Union[WorkflowTemplate, str]) -> WorkflowTemplate:
        if isinstance(template_or_id, WorkflowTemplate):
            return template_or_id
        return self.get_or_raise(template_or_id)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["TemplateService", "TEMPLATE_FILE_PATTERNS"]
