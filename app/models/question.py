from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import QuestionTypeEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    text = Column(String, nullable=False)
    question_type = Column(Enum(QuestionTypeEnum), nullable=False, default=QuestionTypeEnum.MULTIPLE_CHOICE)
    points = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="questions")
    options = relationship(
        "Option", back_populates="question", cascade="all, delete-orphan", order_by="Option.id"
    )
    attempts = relationship("Attempt", back_populates="question")
