from sqlalchemy import Column, Integer, String, Text, DateTime, func
from backoffice.db import Base


class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    setting_key = Column(String(100), unique=True, nullable=False)
    setting_value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
