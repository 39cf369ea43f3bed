"""Site resolution for templates and assets."""

import logging

from src.core import db_client
from src.core.db_client import sanitize_param
from src.domain.site import Site, SiteStatus
from src.domain.template import TaskTemplate
from src.services.template_service import ensure_scoped


logger = logging.getLogger(__name__)


async def list_active_sites(*, company_id: str | None = None) -> list[Site]:
    """Return every site not explicitly marked inactive, optionally scoped to one company."""
    filter_query = f'status != "{SiteStatus.INACTIVE}"'
    if company_id:
        filter_query += f' && company_id = "{sanitize_param(company_id)}"'

    records = await db_client.get_full_list(collection="sites", filter_query=filter_query)
    return [Site.model_validate(record) for record in records]


async def resolve_sites(template: TaskTemplate) -> list[Site]:
    """Resolve the sites a template should be instantiated for.

    A template pinned to a site yields that site alone, and only while it is
    active. An unpinned template yields every active site of its company.
    A template with neither a company nor a pinned site raises
    UnscopedTemplateError rather than spanning every tenant.
    """
    ensure_scoped(template)
    sites = await list_active_sites(company_id=template.company_id)

    if template.site_id is None:
        return sites

    pinned = [site for site in sites if site.id == template.site_id]
    if not pinned:
        logger.debug(
            "Pinned site not active, skipping template",
            extra={"template_id": template.id, "site_id": template.site_id},
        )
    return pinned
