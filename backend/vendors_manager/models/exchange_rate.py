from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Numeric, UniqueConstraint
from vendors_manager.db.base import Base


class ExchangeRate(Base):
    """1 from_currency = rate × to_currency"""
    __tablename__ = "exchange_rates"
    __table_args__ = (UniqueConstraint("from_currency", "to_currency", name="uq_exchange_rate_pair"),)

    id = Column(Integer, primary_key=True, index=True)
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)
    rate = Column(Numeric(12, 6), nullable=False)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ExchangeRate {self.from_currency}->{self.to_currency} {self.rate}>"
