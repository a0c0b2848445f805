"""Organization rows backing each tenant scope."""

import logging

from sqlalchemy.orm import Session

from ..tenancy import TenantScope
from .schema import Organization
from .session import store_safe_query

logger = logging.getLogger(__name__)


def ensure_organization(session: Session, tenant: TenantScope, name: str) -> Organization:
    """
    Return the organization for ``tenant``, creating it on first use.

    Every tenant-owned row references ``organizations.id``, so the row must
    exist before the first write. An existing row keeps its name.
    """
    org = store_safe_query(
        session, lambda s: s.get(Organization, tenant.org_id), "Failed to load organization"
    )
    if org is None:
        org = Organization(id=tenant.org_id, name=name)
        session.add(org)
        session.flush()
        logger.info("Created organization %s (%s)", tenant, name)
    return org
