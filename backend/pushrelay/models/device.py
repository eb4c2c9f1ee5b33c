"""Device model - stores push tokens for registered app installs."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base


class Device(Base):
    """Registered device for push notifications."""
    
    __tablename__ = "devices"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(512), unique=True, nullable=False, index=True)
    platform = Column(String(32), nullable=False)  # ios, android, web
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
