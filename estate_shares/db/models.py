from sqlalchemy import (
    Column, String, Numeric, TIMESTAMP, Integer, JSON, CheckConstraint, func
)
from sqlalchemy.schema import Index

from estate_shares.db.base import Base


class User(Base):
    __tablename__ = "users"
    username = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    password = Column(String, nullable=False)
    wallet_tokens = Column(Numeric(38, 8), nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("wallet_tokens >= 0", name="wallet_tokens_non_negative_check"),
    )


class RealEstateProperty(Base):
    __tablename__ = "real_estate_properties"
    id = Column(String(36), primary_key=True)
    address = Column(String, nullable=False)
    # Soft reference to users.username, no foreign key
    owner = Column(String, nullable=False)
    deed_url = Column(String, nullable=False)
    # Ordered [[username, shares], ...] pairs; a list keeps insertion order on
    # every backend, which the majority tie-break depends on
    tokenized_shares = Column(JSON, nullable=False)
    transaction_history = Column(JSON, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True))

    __table_args__ = (
        Index("idx_real_estate_properties_owner", "owner"),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"
    log_id = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String, nullable=False)
    record_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    old_values = Column(JSON)
    new_values = Column(JSON)
    changed_by = Column(String)
    change_reason = Column(String)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_audit_logs_record_id", "record_id"),
        Index("idx_audit_logs_changed_by", "changed_by"),
    )
