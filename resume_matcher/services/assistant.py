"""
Recruiter chat assistant.

Classifies a recruiter message (job description, refinement, search request
or plain chat), extracts the job description and title when one is given,
and tells the caller whether candidate matching should start. The endpoint
is stateless: the caller passes the current job context and recent turns.
"""
import asyncio
import functools
from typing import Dict, List, Optional, Sequence

from resume_matcher.helpers.prompts import CHAT_SYSTEM_PROMPT
from resume_matcher.models.response import ChatClassification, ChatTurn, MessageType
from resume_matcher.models.settings import MatchingSettings, get_settings
from resume_matcher.utils.exceptions import ConfigurationError, InvalidInputError, ScoringError
from resume_matcher.utils.logging_config import get_logger
from resume_matcher.utils.utils import chat_completion, strict_json

logger = get_logger(__name__)

HISTORY_LIMIT = 20
MAX_TITLE_CHARS = 50

UNPARSEABLE_REPLY = "I'm sorry, I had trouble processing your request. Could you please rephrase it?"
FALLBACK_REPLIES = {
    "auth": "I'm sorry, but the language model API is not properly configured. "
            "Please contact your administrator to set up the API key.",
    "rate_limit": "I'm currently experiencing high demand. Please try again in a few moments.",
    "unavailable": "I'm temporarily unavailable due to API issues. Please try again later.",
    "default": "I'm sorry, I'm having trouble processing your request right now. "
               "Please try again or rephrase your question.",
}


def _fallback_key(status_code: Optional[int]) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate_limit"
    if status_code is not None and status_code >= 500:
        return "unavailable"
    return "default"


def build_chat_messages(
    message: str,
    job_title: Optional[str] = None,
    current_job_description: Optional[str] = None,
    history: Sequence[ChatTurn] = (),
) -> List[Dict[str, str]]:
    system = CHAT_SYSTEM_PROMPT.format(
        job_title=job_title or "Not specified yet",
        job_description=current_job_description or "Not specified yet",
    )
    turns = [{"role": t.role, "content": t.content} for t in list(history)[-HISTORY_LIMIT:]]
    return [{"role": "system", "content": system}, *turns, {"role": "user", "content": message}]


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_classification(content: str, current_job_description: Optional[str] = None) -> ChatClassification:
    """
    Validate the assistant's JSON answer.

    Anything that is not a well-formed classification is downgraded to a
    plain chat message carrying the raw text, and never starts matching.
    """
    try:
        data = strict_json(content)
        message_type = MessageType(data.get("message_type"))
        reply = _clean(data.get("ai_response_text"))
        if not reply:
            raise ValueError("missing ai_response_text")
    except ValueError as e:
        logger.warning(f"Unusable assistant response, treating as chat message: {e}")
        return ChatClassification(
            ai_response_text=_clean(content) or UNPARSEABLE_REPLY,
            job_description=current_job_description,
        )

    extracted_description = None
    extracted_title = None
    if message_type is MessageType.JOB_DESCRIPTION:
        extracted_description = _clean(data.get("extracted_job_description"))
        extracted_title = _clean(data.get("extracted_job_title"))
        if extracted_title:
            extracted_title = extracted_title[:MAX_TITLE_CHARS]

    return ChatClassification(
        message_type=message_type,
        ai_response_text=reply,
        extracted_job_description=extracted_description,
        extracted_job_title=extracted_title,
        trigger_resume_matching=data.get("trigger_resume_matching") is True,
        job_description=extracted_description or current_job_description,
    )


async def classify_message(
    message: Optional[str],
    job_title: Optional[str] = None,
    current_job_description: Optional[str] = None,
    history: Sequence[ChatTurn] = (),
    settings: Optional[MatchingSettings] = None,
) -> ChatClassification:
    """Ask the LLM to classify one recruiter message in the context of the current job."""
    settings = settings or get_settings()
    if not message or not message.strip():
        raise InvalidInputError("Message is required", field="message")
    if not settings.llm_api_key:
        raise ConfigurationError(
            "LLM API key not configured. Set LLM_API_KEY (or OPENAI_API_KEY) in the environment.",
            config_key="LLM_API_KEY",
        )

    call = functools.partial(
        chat_completion,
        build_chat_messages(message, job_title, current_job_description, history),
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        temperature=settings.chat_temperature,
        max_tokens=settings.chat_max_tokens,
        json_response=True,
        timeout=settings.llm_timeout,
    )

    loop = asyncio.get_running_loop()
    try:
        content = await asyncio.wait_for(loop.run_in_executor(None, call), timeout=settings.llm_timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Assistant call timed out after {settings.llm_timeout}s")
        return ChatClassification(ai_response_text=FALLBACK_REPLIES["unavailable"], job_description=current_job_description)
    except ScoringError as e:
        logger.warning(
            f"Assistant call failed: {e.message}",
            extra={"error_code": e.error_code, "status_code": e.status_code},
        )
        return ChatClassification(
            ai_response_text=FALLBACK_REPLIES[_fallback_key(e.status_code)],
            job_description=current_job_description,
        )

    return parse_classification(content, current_job_description)
