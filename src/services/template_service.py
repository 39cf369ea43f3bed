"""Template loading for the generation run."""

import logging

from pydantic import ValidationError

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.template import FrequencyClass, TaskTemplate


logger = logging.getLogger(__name__)


class InvalidTemplateError(ValueError):
    """A template row could not be parsed into a TaskTemplate."""

    def __init__(self, template_id: str, error: ValidationError) -> None:
        self.template_id = template_id
        super().__init__(f"Template {template_id} is malformed: {error.error_count()} validation error(s)")


class UnscopedTemplateError(ValueError):
    """A template names neither a company nor a site, so it has no tenant to run for."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template {template_id} has neither company_id nor site_id")


def ensure_scoped(template: TaskTemplate) -> None:
    """Raise UnscopedTemplateError unless the template is tied to a company or a site."""
    if template.company_id is None and template.site_id is None:
        raise UnscopedTemplateError(template.id)


async def load_active_templates(
    frequency: FrequencyClass,
) -> tuple[list[TaskTemplate], list[InvalidTemplateError]]:
    """Fetch active templates for one frequency class.

    Store failures propagate: they abort the whole pass for this class. Rows that
    fail validation are returned separately so the caller can record them and
    carry on with the rest.

    Returns:
        Tuple of (valid templates, per-row parse failures)
    """
    with span("template_service.load_active_templates", frequency=str(frequency)):
        records = await db_client.get_full_list(
            collection="task_templates",
            filter_query=f'frequency = "{sanitize_param(frequency)}" && is_active = "true"',
        )

    templates: list[TaskTemplate] = []
    invalid: list[InvalidTemplateError] = []
    for record in records:
        try:
            templates.append(TaskTemplate.model_validate(record))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed template",
                extra={"template_id": record.get("id"), "frequency": str(frequency), "error": str(e)},
            )
            invalid.append(InvalidTemplateError(str(record.get("id")), e))

    logger.info(
        "Loaded active templates",
        extra={"frequency": str(frequency), "count": len(templates), "invalid": len(invalid)},
    )
    return templates, invalid


async def find_triggered_template(asset_type: str) -> TaskTemplate | None:
    """Return the active triggered template servicing an asset type, if any."""
    record = await db_client.get_first_record(
        collection="task_templates",
        filter_query=(
            f'frequency = "{FrequencyClass.TRIGGERED}" && is_active = "true" '
            f'&& asset_type = "{sanitize_param(asset_type)}"'
        ),
    )
    if record is None:
        return None
    return TaskTemplate.model_validate(record)
