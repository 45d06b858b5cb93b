"""
LLM scoring of a single résumé against a job description.

The model is asked for the 100-point rubric as JSON. Its answer is not
trusted as-is: sub-scores are clamped to their maxima and the overall score
is recomputed from them before a MatchResult is built.
"""
import asyncio
import functools
import math
from typing import Any, Dict, List, Optional

from resume_matcher.helpers.parsing import truncate_text
from resume_matcher.helpers.prompts import SCORING_SYSTEM_PROMPT, SCORING_USER_PROMPT
from resume_matcher.models.models import Candidate
from resume_matcher.models.response import (
    SUB_SCORE_MAXIMA,
    EducationAnalysis,
    ExperienceAnalysis,
    KeywordAnalysis,
    MatchAnalysis,
    MatchResult,
    SkillsAnalysis,
    sub_score_total,
)
from resume_matcher.models.settings import MatchingSettings, get_settings
from resume_matcher.utils.exceptions import ScoringError, ScoringErrorKind
from resume_matcher.utils.logging_config import get_logger
from resume_matcher.utils.utils import chat_completion, strict_json

logger = get_logger(__name__)

ANALYSIS_SECTIONS = {
    "keyword_analysis": KeywordAnalysis,
    "experience_analysis": ExperienceAnalysis,
    "education_analysis": EducationAnalysis,
    "skills_analysis": SkillsAnalysis,
}


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        return [x.strip()] if x.strip() else []
    if isinstance(x, list):
        return [str(t).strip() for t in x if str(t).strip()]
    return [str(x)]


def _malformed(message: str) -> ScoringError:
    return ScoringError(message, kind=ScoringErrorKind.MALFORMED_RESPONSE)


def _clamp_score(data: Dict[str, Any], field: str, maximum: float) -> float:
    raw = data.get(field)
    if raw is None or isinstance(raw, bool):
        raise _malformed(f"Scoring response missing numeric '{field}'")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise _malformed(f"Scoring response has non-numeric '{field}': {raw!r}")
    if not math.isfinite(value):
        raise _malformed(f"Scoring response has non-finite '{field}'")
    return max(0.0, min(float(maximum), value))


def _build_analysis(raw: Any) -> MatchAnalysis:
    if not isinstance(raw, dict):
        raise _malformed("Scoring response missing 'analysis' object")

    sections = {}
    for name, model in ANALYSIS_SECTIONS.items():
        section = raw.get(name) or {}
        if not isinstance(section, dict):
            section = {}
        sections[name] = model(**{f: _as_list(section.get(f)) for f in model.model_fields})

    summary = raw.get("summary")
    return MatchAnalysis(summary=str(summary).strip() if summary else "", **sections)


def parse_scoring_response(content: str, candidate: Candidate) -> MatchResult:
    """Validate the model's JSON answer and turn it into a MatchResult."""
    try:
        data = strict_json(content)
    except ValueError as e:
        raise ScoringError(
            "Scoring response is not valid JSON",
            kind=ScoringErrorKind.MALFORMED_RESPONSE,
            body=content,
            cause=e,
        ) from e

    scores = {field: _clamp_score(data, field, maximum) for field, maximum in SUB_SCORE_MAXIMA.items()}
    match_score = sub_score_total(scores)

    reported = data.get("match_score")
    if reported is not None:
        try:
            if float(reported) != match_score:
                logger.warning(
                    f"Candidate {candidate.id}: model reported match_score={reported}, "
                    f"using sum of clamped sub-scores {match_score}"
                )
        except (TypeError, ValueError):
            logger.warning(f"Candidate {candidate.id}: ignoring non-numeric match_score {reported!r}")

    return MatchResult(
        candidate_id=candidate.id,
        candidate_name=candidate.name,
        candidate_email=candidate.email,
        match_score=match_score,
        analysis=_build_analysis(data.get("analysis")),
        **scores,
    )


def build_messages(job_description: str, resume_text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SCORING_SYSTEM_PROMPT},
        {"role": "user", "content": SCORING_USER_PROMPT.format(
            job_description=job_description,
            resume_text=resume_text,
        )},
    ]


async def score_candidate(
    job_description: str,
    candidate: Candidate,
    resume_text: str,
    settings: Optional[MatchingSettings] = None,
) -> MatchResult:
    """Score one candidate with a single LLM call; raises ScoringError on failure."""
    settings = settings or get_settings()
    resume_text = truncate_text(resume_text, settings.max_resume_chars)

    call = functools.partial(
        chat_completion,
        build_messages(job_description, resume_text),
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        json_response=True,
        timeout=settings.llm_timeout,
    )

    loop = asyncio.get_running_loop()
    try:
        content = await asyncio.wait_for(loop.run_in_executor(None, call), timeout=settings.llm_timeout)
    except asyncio.TimeoutError as e:
        raise ScoringError(
            f"LLM call timed out after {settings.llm_timeout}s",
            kind=ScoringErrorKind.TRANSPORT_ERROR,
            cause=e,
        ) from e

    return parse_scoring_response(content, candidate)
