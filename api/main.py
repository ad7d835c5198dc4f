"""
FastAPI Backend for the History Quiz

Thin HTTP adapter over core.QuizEngine. No rendering, no authentication:
the user identity is a path parameter and every user gets their own engine.

Endpoints:
    GET    /users/{id}/units             - List units with graph stats
    GET    /users/{id}/units/{key}       - Get one unit
    PUT    /users/{id}/units/{key}       - Add or replace a unit
    DELETE /users/{id}/units/{key}       - Delete a unit
    POST   /users/{id}/sessions          - Compose a quiz session
    POST   /users/{id}/review            - Compose a review session from the wrong queue
    POST   /users/{id}/answers           - Submit an answer
    GET    /users/{id}/progress          - Mastery counts and wrong queue
    DELETE /users/{id}/progress          - Reset progress
    POST   /users/{id}/progress/flush    - Retry failed saves
"""

import os
import sys
import threading
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from core.config import QuizConfig
from core.errors import (
    InsufficientContent,
    InvalidSelection,
    InvalidUnit,
    StoreError,
    UnknownUnit,
)
from core.knowledge_graph import Unit
from core.question import Question, is_ordered
from core.quiz_engine import QuizEngine
from core.stores import MemoryStore

logger.remove()
logger.add(
    sys.stderr,
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name} | {message}",
)

# ==================== Initialize ====================

app = FastAPI(
    title="History Quiz API",
    description="Auto-generated relationship quizzes with mastery-based repetition",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

config = QuizConfig.from_env()

# One engine per user identity
engines: Dict[str, QuizEngine] = {}
_engines_lock = threading.Lock()


@lru_cache()
def get_store():
    """Backing store; STORE_BACKEND=memory keeps everything in process."""
    if os.getenv("STORE_BACKEND", "redis").lower() == "memory":
        return MemoryStore()

    from redis_store import RedisStore
    return RedisStore()


def get_engine(user_id: str, store=Depends(get_store)) -> QuizEngine:
    with _engines_lock:
        engine = engines.get(user_id)
        if engine is None:
            try:
                engine = QuizEngine.load(user_id, store, config=config)
            except StoreError as e:
                logger.error(f"Could not load {user_id}: {e}")
                raise HTTPException(status_code=503, detail="Store unavailable")
            engines[user_id] = engine
        return engine


# ==================== Request/Response Models ====================

class QuestionModel(BaseModel):
    kind: str
    prompt: str
    options: List[str]
    answer: List[str]
    order_sensitive: Optional[bool] = None
    unit_key: Optional[str] = None
    subject: Optional[str] = None

    @classmethod
    def from_question(cls, question: Question) -> "QuestionModel":
        return cls(
            kind=question.kind,
            prompt=question.prompt,
            options=question.options,
            answer=question.answer,
            order_sensitive=question.order_sensitive,
            unit_key=question.unit_key,
            subject=question.subject,
        )

    def to_question(self) -> Question:
        order_sensitive = self.order_sensitive
        if order_sensitive is None:
            order_sensitive = is_ordered(self.kind)
        return Question(
            kind=self.kind,
            prompt=self.prompt,
            options=list(self.options),
            answer=list(self.answer),
            order_sensitive=order_sensitive,
            unit_key=self.unit_key,
            subject=self.subject,
        )


class SessionRequest(BaseModel):
    unit_key: str
    count: Optional[int] = Field(default=None, ge=1, le=100)


class SessionResponse(BaseModel):
    questions: List[QuestionModel]


class AnswerRequest(BaseModel):
    question: QuestionModel
    selection: List[str]


class AnswerResponse(BaseModel):
    correct: bool
    fingerprint: str
    correct_count: int
    retired: bool
    in_wrong_queue: bool
    expected: List[str]
    saved: bool


class ProgressResponse(BaseModel):
    correct_counts: Dict[str, int]
    wrong_queue: List[QuestionModel]
    pending_save: bool


# ==================== Helper Functions ====================

def to_session_response(questions: List[Question]) -> SessionResponse:
    return SessionResponse(questions=[QuestionModel.from_question(q) for q in questions])


def unit_summary(unit: Unit) -> dict:
    return {
        "key": unit.key,
        "title": unit.title,
        "people": len(unit.people),
        "events": len(unit.events),
        "places": len(unit.places),
        "groups": len(unit.groups),
        "institutions": len(unit.institutions),
    }


# ==================== Core Endpoints ====================

@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "History Quiz API is running",
        "version": "1.0.0",
        "mastery_threshold": config.mastery_threshold,
    }


@app.post("/users/{user_id}/sessions", response_model=SessionResponse)
def compose_session(request: SessionRequest, engine: QuizEngine = Depends(get_engine)):
    try:
        questions = engine.compose_session(request.unit_key, request.count)
    except UnknownUnit as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientContent as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Not enough material for this unit and session size",
                "requested": e.requested,
                "produced": e.produced,
            },
        )
    return to_session_response(questions)


@app.post("/users/{user_id}/review", response_model=SessionResponse)
def compose_review(engine: QuizEngine = Depends(get_engine)):
    return to_session_response(engine.compose_review())


@app.post("/users/{user_id}/answers", response_model=AnswerResponse)
def submit_answer(request: AnswerRequest, engine: QuizEngine = Depends(get_engine)):
    try:
        result = engine.submit_answer(request.question.to_question(), request.selection)
    except InvalidSelection as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AnswerResponse(**result.to_dict())


# ==================== Progress Endpoints ====================

@app.get("/users/{user_id}/progress", response_model=ProgressResponse)
def get_progress(engine: QuizEngine = Depends(get_engine)):
    return ProgressResponse(
        correct_counts=engine.progress.correct_counts,
        wrong_queue=[QuestionModel.from_question(q) for q in engine.progress.wrong_queue],
        pending_save=engine.pending_save,
    )


@app.delete("/users/{user_id}/progress")
def reset_progress(user_id: str, engine: QuizEngine = Depends(get_engine)):
    saved = engine.reset_progress()
    return {"status": "reset", "user_id": user_id, "saved": saved}


@app.post("/users/{user_id}/progress/flush")
def flush_progress(user_id: str, engine: QuizEngine = Depends(get_engine)):
    return {"user_id": user_id, "pending_save": not engine.flush()}


# ==================== Unit Endpoints ====================

@app.get("/users/{user_id}/units")
def list_units(engine: QuizEngine = Depends(get_engine)):
    return {
        "units": [unit_summary(u) for u in engine.kb.units.values()],
        "stats": engine.kb.get_stats(),
    }


@app.get("/users/{user_id}/units/{unit_key}")
def get_unit(unit_key: str, engine: QuizEngine = Depends(get_engine)):
    try:
        return engine.kb.get_unit(unit_key).to_dict()
    except UnknownUnit as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.put("/users/{user_id}/units/{unit_key}")
def save_unit(unit_key: str, body: Dict[str, Any], engine: QuizEngine = Depends(get_engine)):
    try:
        saved = engine.save_unit(Unit.from_dict(body, key=unit_key))
    except InvalidUnit as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "saved", "unit": unit_summary(engine.kb.get_unit(unit_key)), "saved": saved}


@app.delete("/users/{user_id}/units/{unit_key}")
def delete_unit(unit_key: str, engine: QuizEngine = Depends(get_engine)):
    try:
        saved = engine.delete_unit(unit_key)
    except UnknownUnit as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "unit_key": unit_key, "saved": saved}


# ==================== Run Server ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
