# Overview: Service-layer operations for storage locations.

from __future__ import annotations

from ..errors import InvalidStateTransition
from ..extensions import db
from ..identity import Identity
from ..models import Location, Ticket, Transaction
from ..permissions import Permission
from .tenant_service import get_in_org, scoped_query


def list_locations(org_id: str) -> list[Location]:
    return scoped_query(Location, org_id).order_by(Location.name.asc(), Location.id.asc()).all()


def get_location(org_id: str, location_id: int) -> Location:
    return get_in_org(Location, location_id, org_id, resource="Location")


def create_location(
    *,
    actor: Identity,
    name: str,
    capacity: float,
    capacity_unit: str | None = None,
) -> Location:
    location = Location(
        org_id=actor.org_id,
        user_id=actor.user_id,
        name=name,
        capacity=capacity,
        capacity_unit=capacity_unit or "bales",
    )
    db.session.add(location)
    db.session.flush()
    return location


def update_location(*, actor: Identity, location_id: int, patch: dict) -> Location:
    location = get_in_org(Location, location_id, actor.org_id, lock=True, resource="Location")

    if "name" in patch:
        location.name = patch["name"]
    if "capacity" in patch:
        location.capacity = patch["capacity"]
    if "capacity_unit" in patch:
        location.capacity_unit = patch["capacity_unit"] or "bales"

    db.session.flush()
    return location


def delete_location(*, actor: Identity, location_id: int) -> None:
    """
    Hard-delete a location with no ledger history.

    Raises InvalidStateTransition if any transaction references it; tickets
    pointing at it as source or destination are orphaned.
    """
    actor.require(Permission.LOCATIONS_DELETE, "You do not have permission to delete locations")
    location = get_in_org(Location, location_id, actor.org_id, lock=True, resource="Location")

    history = scoped_query(Transaction, actor.org_id).filter(Transaction.location_id == location.id).count()
    if history > 0:
        raise InvalidStateTransition("Cannot delete location with transaction history")

    scoped_query(Ticket, actor.org_id).filter(Ticket.location_id == location.id).update(
        {Ticket.location_id: None}
    )
    scoped_query(Ticket, actor.org_id).filter(Ticket.destination_id == location.id).update(
        {Ticket.destination_id: None}
    )
    db.session.delete(location)
    db.session.flush()
