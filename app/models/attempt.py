from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base

class Attempt(Base):
    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "question_id", name="uq_attempts_enrollment_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    selected_option_id = Column(Integer, ForeignKey("options.id"), nullable=True)
    text_answer = Column(String, nullable=True)
    is_correct = Column(Boolean, nullable=True)  # set at grading time
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    enrollment = relationship("Enrollment", back_populates="attempts")
    question = relationship("Question", back_populates="attempts")
