import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from exam_engine import crud, schemas
from exam_engine.config import Settings
from exam_engine.database import get_session_local, init_db
from exam_engine.errors import ExamEngineError
from exam_engine.grading import grade_submission
from exam_engine.llm import extract_questions
from exam_engine.pipeline import ingest_response


# -------------------------------------------------
# Logger
# -------------------------------------------------
logger = logging.getLogger("exam_engine")
if not logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
    logger.addHandler(_h)
logger.setLevel(logging.INFO)


# -------------------------------------------------
# FastAPI app / CORS
# -------------------------------------------------
app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    settings = Settings.from_env()
    app.state.settings = settings
    # model key lives in memory only; it can be replaced through /api/config
    app.state.gemini_api_key = settings.gemini_api_key
    init_db(settings.database_url)


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None) or Settings()
    return settings.model_copy(update={"gemini_api_key": getattr(request.app.state, "gemini_api_key", None)})


def get_db(settings: Settings = Depends(get_settings)):
    db = get_session_local(settings.database_url)()
    try:
        yield db
    finally:
        db.close()


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _store(db: Session, title: str, result: schemas.IngestionResult) -> schemas.UploadResult:
    if not result.questions:
        detail = "No questions found in the document. Please ensure your document contains questions with clear answers."
        if result.errors:
            detail = f"Invalid question format: {'; '.join(result.errors[:3])}"
            if len(result.errors) > 3:
                detail += f" (and {len(result.errors) - 3} more)"
        raise HTTPException(status_code=400, detail=detail)

    db_test = crud.create_test(db, title, result.questions)
    return schemas.UploadResult(
        test_id=db_test.id,
        share_link=db_test.share_link,
        question_count=len(result.questions),
        invalid_questions=result.invalid_questions,
        errors=result.errors,
    )


def _get_test_or_404(db: Session, share_link: str):
    db_test = crud.get_test_by_share_link(db, share_link)
    if db_test is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return db_test


# -------------------------------------------------
# API routes
# -------------------------------------------------
@app.post("/api/tests", response_model=schemas.UploadResult)
def create_test(payload: schemas.CreateTestRequest, settings: Settings = Depends(get_settings), db: Session = Depends(get_db)):
    """Extract questions from document text with the model, then store them."""
    if not settings.gemini_api_key:
        raise HTTPException(status_code=503, detail="Gemini API key is not set")
    try:
        result = extract_questions(payload.text, settings)
    except ExamEngineError as e:
        logger.error("LLM parsing error: %s", e)
        raise HTTPException(status_code=400, detail=f"Failed to extract questions: {e}")
    if result is None:
        raise HTTPException(status_code=502, detail="Failed to extract questions: no response from LLM")
    return _store(db, payload.title, result)


@app.post("/api/tests/import", response_model=schemas.UploadResult)
def import_test(payload: schemas.ImportTestRequest, settings: Settings = Depends(get_settings), db: Session = Depends(get_db)):
    """Store questions from an already captured raw model response."""
    try:
        result = ingest_response(payload.response, min_question_chars=settings.min_question_chars)
    except ExamEngineError as e:
        raise HTTPException(status_code=400, detail=f"Failed to extract questions: {e}")
    return _store(db, payload.title, result)


@app.get("/api/tests/{share_link}", response_model=schemas.QuestionSheet)
def read_test(share_link: str, db: Session = Depends(get_db)):
    db_test = _get_test_or_404(db, share_link)
    questions: List[schemas.StoredQuestion] = [
        schemas.StoredQuestion(id=qid, order=order, question=question)
        for qid, order, question in crud.load_questions(db_test)
    ]
    return schemas.QuestionSheet(share_link=db_test.share_link, title=db_test.title, questions=questions)


@app.post("/api/tests/{share_link}/submit", response_model=schemas.GradingResponse)
def submit_answers(share_link: str, payload: schemas.SubmissionRequest, db: Session = Depends(get_db)):
    """
    Grade a submission.

    answers: {"<questionId>": <raw answer>, "<questionId>_<leftIndex>": <rightIndex>, ...}
    """
    db_test = _get_test_or_404(db, share_link)
    stored = crud.load_questions(db_test)
    if not stored:
        raise HTTPException(status_code=400, detail="No questions found in test")
    return grade_submission([(qid, question) for qid, _, question in stored], payload.answers)


# --- Gemini key mgmt (in-memory only) ---
@app.get("/api/config/status", response_model=schemas.KeyStatus)
def get_config_status():
    return schemas.KeyStatus(gemini_key_set=bool(getattr(app.state, "gemini_api_key", None)))


@app.post("/api/config/gemini", response_model=schemas.KeyStatus)
def set_gemini_key(payload: schemas.GeminiKeyPayload):
    # Do NOT log the key
    app.state.gemini_api_key = payload.api_key.strip()
    return schemas.KeyStatus(gemini_key_set=True)


@app.post("/api/config/gemini/clear", response_model=schemas.KeyStatus)
def clear_gemini_key():
    app.state.gemini_api_key = None
    return schemas.KeyStatus(gemini_key_set=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("exam_engine.main:app", host="127.0.0.1", port=8000)
