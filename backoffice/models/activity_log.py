# backoffice/models/activity_log.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from backoffice.db import Base

class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=True, index=True)   # кто сделал (admin id)

    # order_marked_paid | order_cancelled | domain_assigned | withdrawal_processed ...
    action = Column(String(64), nullable=False, index=True)
    details = Column(Text, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
