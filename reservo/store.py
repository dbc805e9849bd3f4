"""Tenant, reservation and conversation lookups. Callers own the commit."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Conversation, Reservation, Tenant

MESSAGE_IDS_KEPT = 50


def find_tenants_by_channel_id(db: Session, phone_id: str) -> List[Tenant]:
    if not phone_id:
        return []
    return db.query(Tenant).filter_by(phone_id=phone_id).order_by(Tenant.id).all()


def tenants_with_channel_token(db: Session) -> List[Tenant]:
    return (
        db.query(Tenant)
          .filter(Tenant.wh_token.isnot(None), Tenant.wh_token != "")
          .order_by(Tenant.id)
          .all()
    )


def get_tenant(db: Session, tenant_id: str) -> Optional[Tenant]:
    return db.get(Tenant, tenant_id)


def get_reservation(db: Session, reservation_id: int) -> Optional[Reservation]:
    return db.get(Reservation, reservation_id)


def find_open_reservation_by_phone(
    db: Session, tenant_id: str, phone: str, since: Optional[datetime] = None
) -> Optional[Reservation]:
    q = db.query(Reservation).filter_by(
        tenant_id=tenant_id, customer_phone=phone, status="pending"
    )
    if since is not None:
        q = q.filter(Reservation.updated_at >= since)
    return q.order_by(Reservation.updated_at.desc(), Reservation.id.desc()).first()


def create_reservation(db: Session, **fields) -> Reservation:
    reservation = Reservation(**fields)
    db.add(reservation)
    db.flush()
    return reservation


def update_reservation(db: Session, reservation_id: int, fields: dict) -> Optional[Reservation]:
    reservation = db.get(Reservation, reservation_id)
    if reservation is None:
        return None
    for key, value in fields.items():
        setattr(reservation, key, value)
    reservation.updated_at = datetime.utcnow()
    db.flush()
    return reservation


def booked_seats(db: Session, tenant_id: str, date: str) -> int:
    total = (
        db.query(func.coalesce(func.sum(Reservation.party_size), 0))
          .filter(
              Reservation.tenant_id == tenant_id,
              Reservation.date == date,
              Reservation.status != "cancelled",
          )
          .scalar()
    )
    return int(total or 0)


def find_live_conversation(
    db: Session, tenant_id: str, phone: str, since: datetime
) -> Optional[Conversation]:
    return (
        db.query(Conversation)
          .filter(
              Conversation.tenant_id == tenant_id,
              Conversation.customer_phone == phone,
              Conversation.updated_at >= since,
          )
          .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
          .first()
    )


def save_conversation(
    db: Session, conversation: Optional[Conversation], tenant_id: str, phone: str, turns: list,
    message_id: Optional[str] = None,
) -> Conversation:
    if conversation is None:
        conversation = Conversation(tenant_id=tenant_id, customer_phone=phone)
        db.add(conversation)
    # new list so the JSON column is flagged dirty
    conversation.turns = list(turns)
    if message_id:
        seen = list(conversation.message_ids or []) + [message_id]
        conversation.message_ids = seen[-MESSAGE_IDS_KEPT:]
    conversation.updated_at = datetime.utcnow()
    db.flush()
    return conversation
