from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from exam_engine.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Test(Base):
    __tablename__ = "tests"

    id = Column(Integer, primary_key=True, index=True)
    share_link = Column(String(32), unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    questions = relationship(
        "Question",
        back_populates="test",
        order_by="Question.order",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id"), index=True, nullable=False)
    order = Column(Integer, nullable=False)
    question_type = Column(String, index=True, nullable=False)
    question_text = Column(Text, nullable=False)
    answer_provided = Column(Boolean, default=False)
    options = Column(Text)  # JSON array; also sequencing items
    correct_option_index = Column(Integer)
    correct_answers = Column(Text)  # JSON array
    correct_text = Column(Text)  # fill_blank answer, descriptive sample, composite fill-in answer
    correct_answer = Column(Boolean)  # true_false
    matching_pairs = Column(Text)  # JSON [{left, right}]
    correct_matches = Column(Text)  # JSON [{leftIndex, rightIndex}]
    has_fill_in_part = Column(Boolean, default=False)
    fill_in_prompt = Column(Text)
    correct_order = Column(Text)  # JSON array

    test = relationship("Test", back_populates="questions")
