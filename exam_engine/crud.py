import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from exam_engine import models, schemas
from exam_engine.storage import columns_to_record, from_record, record_to_columns, to_record

logger = logging.getLogger(__name__)

SHARE_LINK_ATTEMPTS = 10


def generate_share_link() -> str:
    # short, URL-friendly identifier
    return uuid.uuid4().hex[:16]


def get_test_by_share_link(db: Session, share_link: str) -> Optional[models.Test]:
    return db.query(models.Test).filter(models.Test.share_link == share_link).first()


def _unique_share_link(db: Session) -> str:
    for _ in range(SHARE_LINK_ATTEMPTS):
        link = generate_share_link()
        if get_test_by_share_link(db, link) is None:
            return link
    raise RuntimeError("Failed to generate unique share link")


def create_test(db: Session, title: str, questions: Sequence[schemas.QuestionVariant]) -> models.Test:
    db_test = models.Test(share_link=_unique_share_link(db), title=title)
    for order, question in enumerate(questions):
        db_test.questions.append(models.Question(**record_to_columns(to_record(question, order))))
    db.add(db_test)
    db.commit()
    db.refresh(db_test)
    logger.info("stored test %s (%d questions)", db_test.share_link, len(questions))
    return db_test


def load_questions(db_test: models.Test) -> List[Tuple[int, int, schemas.QuestionVariant]]:
    """(id, order, variant) per stored question, in test order."""
    return [(row.id, row.order, from_record(columns_to_record(row))) for row in db_test.questions]
