# routers/chat.py
from fastapi import APIRouter

from resume_matcher.models.response import ChatClassification, ChatClassifyRequest
from resume_matcher.models.settings import get_settings
from resume_matcher.services.assistant import classify_message
from resume_matcher.utils.logging_config import log_api_call

router = APIRouter()


@router.post("/classify", response_model=ChatClassification)
@log_api_call("classify chat message")
async def classify_chat_message(payload: ChatClassifyRequest):
    """Classify a recruiter message and extract a job description when one is given"""
    return await classify_message(
        payload.message,
        job_title=payload.job_title,
        current_job_description=payload.current_job_description,
        history=payload.history,
        settings=get_settings(),
    )
