"""
Multi-Tenant Service: Tenant Scoping Helpers

WHY: Every row belongs to exactly one organization, and the org_id filter is
the only access boundary enforced at the data layer. Centralizing the lookup
keeps "not in your org" and "does not exist" indistinguishable.

USAGE:
    from hayledger.services.tenant_service import get_in_org, scoped_query

    stack = get_in_org(Stack, stack_id, identity.org_id)
    tickets = scoped_query(Ticket, identity.org_id).filter_by(status="pending").all()
"""

from __future__ import annotations

from ..errors import NotFound
from ..extensions import db
from .concurrency import lock_for_update


def scoped_query(model, org_id: str):
    """Query `model` restricted to one organization."""
    return db.session.query(model).filter(model.org_id == org_id)


def get_in_org(model, entity_id, org_id: str, *, lock: bool = False, resource: str | None = None):
    """
    Load one row by id within an organization.

    Raises NotFound when the id is missing OR belongs to another org.
    """
    name = resource or model.__name__
    if entity_id is None:
        raise NotFound(name)

    query = scoped_query(model, org_id).filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFound(name)
    return row


def get_many_in_org(model, entity_ids: list[int], org_id: str, *, lock: bool = False) -> list:
    """Load several rows in one org; callers compare lengths to detect misses."""
    if not entity_ids:
        return []
    query = scoped_query(model, org_id).filter(model.id.in_(entity_ids))
    if lock:
        query = lock_for_update(query)
    return query.all()
