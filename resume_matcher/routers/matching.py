# routers/matching.py
from fastapi import APIRouter

from resume_matcher.models.response import MatchingResults, MatchRequest
from resume_matcher.models.settings import get_settings
from resume_matcher.services.db import save_match_report
from resume_matcher.services.matching import match_candidates
from resume_matcher.services.reports import build_report, report_to_doc
from resume_matcher.utils.exceptions import StoreUnavailableError
from resume_matcher.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.post("", response_model=MatchingResults, response_model_exclude_none=True)
@log_api_call("match candidates")
async def run_matching(payload: MatchRequest):
    """Score stored candidates against a job description and persist the report."""
    settings = get_settings()
    results = await match_candidates(payload.job_description, chat_id=payload.chat_id, settings=settings)

    report = build_report(
        job_description=payload.job_description,
        results=results,
        qualify_threshold=settings.qualify_threshold,
        chat_id=payload.chat_id,
    )
    try:
        await save_match_report(report_to_doc(report))
    except StoreUnavailableError as e:
        # the caller still gets the results, only without a report id
        logger.warning(f"Match report not persisted: {e.message}")
        return results

    return report.results
