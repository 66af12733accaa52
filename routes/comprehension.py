from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from agents.comprehension_agent import AnswerGenerationError, ComprehensionAgent
from learning_service.dependencies import get_comprehension_agent, get_session_user, get_transcript_service
from learning_service.transcripts import TranscriptError, TranscriptService
from routes.courses import read_upload_text
from schemas.api import AskRequest, AskResponse, ComprehensionSession, VideoExtractRequest

router = APIRouter(prefix="/api", tags=["comprehension"])

EMPTY_DOCUMENT_TEXT = "Sample text"


def _new_session_id() -> str:
    # Only an identifier: the text itself travels with every question.
    return str(uuid.uuid4())


async def _answer(agent: ComprehensionAgent, payload: AskRequest, source: str) -> AskResponse:
    try:
        result = await run_in_threadpool(
            agent.generate, {"question": payload.question, "text": payload.text, "source": source}
        )
    except AnswerGenerationError as exc:
        raise HTTPException(status_code=502, detail="AI generation failed") from exc
    return AskResponse(**result)


@router.post("/doc-comprehension/upload", response_model=ComprehensionSession)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    user_id: int = Depends(get_session_user),
):
    text = await read_upload_text(file)
    return ComprehensionSession(session_id=_new_session_id(), text=text or EMPTY_DOCUMENT_TEXT)


@router.post("/doc-comprehension/ask", response_model=AskResponse)
async def ask_document(
    payload: AskRequest,
    user_id: int = Depends(get_session_user),
    agent: ComprehensionAgent = Depends(get_comprehension_agent),
):
    return await _answer(agent, payload, "document")


@router.post("/video-comprehension/extract", response_model=ComprehensionSession)
async def extract_video(
    payload: VideoExtractRequest,
    user_id: int = Depends(get_session_user),
    transcripts: TranscriptService = Depends(get_transcript_service),
):
    try:
        text = await run_in_threadpool(transcripts.get_text, payload.url)
    except TranscriptError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ComprehensionSession(session_id=_new_session_id(), text=text)


@router.post("/video-comprehension/ask", response_model=AskResponse)
async def ask_video(
    payload: AskRequest,
    user_id: int = Depends(get_session_user),
    agent: ComprehensionAgent = Depends(get_comprehension_agent),
):
    return await _answer(agent, payload, "video")
