"""
Invitation / password reset bookkeeping
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


TOKEN_TYPES = ("invitation", "reset")


class PasswordResetToken(Base):
    """Opaque single-use token stored alongside the encrypted link"""
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True, comment="Random hex")
    type = Column(String(20), nullable=False, comment="invitation/reset")
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


class InvitationAuditLog(Base):
    """Account lifecycle audit trail

    Actions:
    - invitation_created
    - invitation_sent
    - invitation_accepted
    - password_reset_requested
    """
    __tablename__ = "invitation_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    previous_status = Column(String(20))
    new_status = Column(String(20))
    triggered_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    details = Column("metadata", JSON, comment="Extra context")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<InvitationAuditLog {self.action} user:{self.user_id}>"


class EmailRateLimit(Base):
    """Fixed window counter per identifier (e.g. password-reset:<email>)"""
    __tablename__ = "email_rate_limits"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(255), nullable=False, unique=True)
    count = Column(Integer, nullable=False, default=0)
    window_start = Column(DateTime, nullable=False, default=datetime.utcnow)
