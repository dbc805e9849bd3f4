from sqlalchemy import (
    Column, String, Text, DateTime, Date, Integer, Enum, ForeignKey, JSON, Index
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

from .availability import AvailabilityConfig

Base = declarative_base()

RESERVATION_STATUSES = ("pending", "confirmed", "cancelled")


class Tenant(Base):
    __tablename__ = "tenants"
    id            = Column(String, primary_key=True, index=True)
    user_id       = Column(Integer, nullable=True)
    name          = Column(String, default="")
    status        = Column(Enum("active", "suspended", name="tenant_status_enum"), default="active")
    power_status  = Column(Enum("running", "offline", "restarting", name="power_status_enum"), default="offline")
    expires_at    = Column(Date, nullable=True)
    ai_api_key    = Column(Text, nullable=True)
    # WhatsApp channel
    phone_id      = Column(String, index=True, nullable=True)
    wh_token      = Column(Text, nullable=True)
    business_id   = Column(String, nullable=True)
    client_id     = Column(String, nullable=True)
    client_secret = Column(Text, nullable=True)
    # operational config
    max_seats     = Column(Integer, default=0)
    open_time     = Column(String, nullable=True)
    close_time    = Column(String, nullable=True)
    open_days     = Column(JSON, nullable=True)
    ai_language   = Column(Enum("es", "en", "both", name="ai_language_enum"), default="es")

    @property
    def is_running(self) -> bool:
        return self.power_status == "running"

    def is_active(self, today) -> bool:
        """Active and not past the last day of its subscription."""
        if self.status != "active":
            return False
        return self.expires_at is None or today <= self.expires_at

    def availability_config(self):
        if not (self.max_seats or self.open_time or self.close_time or self.open_days):
            return None
        return AvailabilityConfig(
            max_seats=self.max_seats or 0,
            open_time=self.open_time or "",
            close_time=self.close_time or "",
            open_days=list(self.open_days or []),
        )


class Reservation(Base):
    __tablename__ = "reservations"
    id                    = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id             = Column(String, ForeignKey("tenants.id"), index=True)
    user_id               = Column(Integer, nullable=True)
    customer_name         = Column(String, default="")
    customer_phone        = Column(String, index=True)
    date                  = Column(String(10), nullable=True)
    time                  = Column(String(5), nullable=True)
    party_size            = Column(Integer, nullable=True)
    status                = Column(Enum(*RESERVATION_STATUSES, name="reservation_status_enum"), default="pending")
    source                = Column(Enum("WhatsApp", "Web", "Phone", name="reservation_source_enum"), default="WhatsApp")
    raw_commentary        = Column(Text, default="")
    structured_commentary = Column(JSON, nullable=True)
    staff_notes           = Column(Text, default="")
    created_at            = Column(DateTime, default=datetime.utcnow)
    updated_at            = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tenant = relationship("Tenant")


class Conversation(Base):
    __tablename__ = "conversations"
    id             = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id      = Column(String, ForeignKey("tenants.id"))
    customer_phone = Column(String, nullable=False)
    turns          = Column(JSON, nullable=False, default=list)
    # WhatsApp ids of the messages already answered, newest last
    message_ids    = Column(JSON, nullable=True)
    created_at     = Column(DateTime, default=datetime.utcnow)
    updated_at     = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_conversations_tenant_phone", "tenant_id", "customer_phone"),
    )
