# saas_starter/models/team.py
from sqlalchemy import Column, Integer, String, DateTime

from saas_starter.db.base import Base, utcnow


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    # billing identity at the payment provider (one per team)
    stripe_customer_id = Column(String, unique=True, nullable=True, index=True)
    stripe_subscription_id = Column(String, unique=True, nullable=True)
    stripe_product_id = Column(String, nullable=True)
    plan_name = Column(String(50), nullable=True)
    subscription_status = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
