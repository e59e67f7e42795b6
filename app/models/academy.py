from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import AcademyStatusEnum

class Academy(Base):
    __tablename__ = "academies"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    status = Column(Enum(AcademyStatusEnum), nullable=False, default=AcademyStatusEnum.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="academy")
    exams = relationship("Exam", back_populates="academy")
    purchases = relationship("ExamPurchase", back_populates="academy")
