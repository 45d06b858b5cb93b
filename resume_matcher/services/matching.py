"""
Batch orchestration of résumé matching.

A run loads eligible candidates, prescreens them against keywords derived
from the job description, then scores the survivors with the LLM in
fixed-size concurrent batches. Individual scoring failures are retried and,
when retries run out, dropped without affecting sibling candidates.
"""
import asyncio
import functools
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple, TypeVar

from resume_matcher.models.models import Candidate
from resume_matcher.models.response import MatchingResults, MatchResult
from resume_matcher.models.settings import MatchingSettings, get_settings
from resume_matcher.services.db import fetch_completed_candidates
from resume_matcher.services.keywords import extract_keywords, passes_prescreen
from resume_matcher.services.scorer import score_candidate
from resume_matcher.utils.exceptions import (
    ConfigurationError,
    InvalidInputError,
    ScoringError,
    exponential_backoff,
    with_retry,
)
from resume_matcher.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CandidateLoader = Callable[[], Awaitable[List[Candidate]]]
Scorer = Callable[[str, Candidate, str], Awaitable[MatchResult]]

NO_CANDIDATES_MESSAGE = "No candidates with processed resumes found in the database."
NO_PRESCREEN_MESSAGE = "No candidates passed keyword prescreening for this job description."
NO_QUALIFYING_MESSAGE = "No candidates reached the minimum match score of {threshold:g}."


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _require_job_description(job_description: Optional[str]) -> str:
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required", field="job_description")
    return job_description


class MatchAccumulator:
    """Collects scored results for a single pipeline run."""

    def __init__(self):
        self.results: List[MatchResult] = []
        self.failed_candidate_ids: List[str] = []

    def add_batch(self, batch: Sequence[Tuple[Candidate, str]], outcomes: Sequence[Optional[MatchResult]]) -> None:
        for (candidate, _), outcome in zip(batch, outcomes):
            if outcome is None:
                self.failed_candidate_ids.append(candidate.id)
            else:
                self.results.append(outcome)

    def qualifying(self, threshold: float) -> List[MatchResult]:
        # sorted() is stable, so ties keep input order
        kept = [r for r in self.results if r.match_score >= threshold]
        return sorted(kept, key=lambda r: r.match_score, reverse=True)


class MatchingPipeline:
    """Prescreen, batch-score and rank candidates for one job description."""

    def __init__(
        self,
        settings: MatchingSettings,
        load_candidates: CandidateLoader,
        scorer: Scorer,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        backoff: Callable[[int], float] = exponential_backoff,
    ):
        self.settings = settings
        self.load_candidates = load_candidates
        self.scorer = scorer
        self.sleep = sleep
        self.backoff = backoff

    def prescreen(self, candidates: Sequence[Candidate], keywords: Set[str]) -> List[Tuple[Candidate, str]]:
        survivors = []
        for candidate in candidates:
            resume_text = candidate.resume_text
            if not resume_text:
                logger.info(f"Skipping candidate {candidate.id} - no resume text found")
                continue
            if not passes_prescreen(resume_text, keywords, self.settings.prescreen_threshold):
                logger.debug(f"Candidate {candidate.id} failed keyword prescreen")
                continue
            survivors.append((candidate, resume_text))
        return survivors

    async def _score_with_retry(self, job_description: str, candidate: Candidate, resume_text: str) -> Optional[MatchResult]:
        try:
            return await with_retry(
                self.scorer,
                job_description,
                candidate,
                resume_text,
                max_retries=self.settings.max_retries,
                backoff=self.backoff,
                exceptions=(ScoringError,),
                logger=logger,
                sleep=self.sleep,
            )
        except ScoringError as e:
            logger.warning(
                f"Dropping candidate {candidate.id} after retries: {e.message}",
                extra={"candidate_id": candidate.id, "error_code": e.error_code, "details": e.details},
            )
        except Exception:
            logger.exception(f"Unexpected error scoring candidate {candidate.id}")
        return None

    async def _score_batch(self, job_description: str, batch: Sequence[Tuple[Candidate, str]]) -> List[Optional[MatchResult]]:
        return await asyncio.gather(
            *(self._score_with_retry(job_description, candidate, text) for candidate, text in batch)
        )

    async def run(self, job_description: str, chat_id: Optional[str] = None) -> MatchingResults:
        start_time = time.time()
        job_description = _require_job_description(job_description)
        logger.info(f"Starting candidate matching (chat_id={chat_id})")

        with PerformanceMonitor("Loading completed candidates", logger):
            candidates = [c for c in await self.load_candidates() if c.is_eligible]

        total = len(candidates)
        if not candidates:
            logger.info("No eligible candidates in store")
            return MatchingResults(
                message=NO_CANDIDATES_MESSAGE,
                chat_id=chat_id,
                processing_time_seconds=round(time.time() - start_time, 3),
            )

        keywords = extract_keywords(job_description)
        filtered = self.prescreen(candidates, keywords)
        logger.info(f"Prescreened {total} -> {len(filtered)} candidates using {len(keywords)} keywords")

        if not filtered:
            return MatchingResults(
                total_candidates_analyzed=total,
                message=NO_PRESCREEN_MESSAGE,
                chat_id=chat_id,
                processing_time_seconds=round(time.time() - start_time, 3),
            )

        accumulator = MatchAccumulator()
        batches = chunked(filtered, self.settings.batch_size)
        for index, batch in enumerate(batches, start=1):
            logger.debug(f"Scoring batch {index}/{len(batches)} ({len(batch)} candidates)")
            outcomes = await self._score_batch(job_description, batch)
            accumulator.add_batch(batch, outcomes)
            if index < len(batches) and self.settings.batch_delay_seconds > 0:
                await self.sleep(self.settings.batch_delay_seconds)

        matches = accumulator.qualifying(self.settings.qualify_threshold)
        elapsed = round(time.time() - start_time, 3)
        logger.info(
            f"Matching finished in {elapsed}s: {len(accumulator.results)} scored, "
            f"{len(accumulator.failed_candidate_ids)} failed, {len(matches)} qualifying"
        )

        return MatchingResults(
            matches=matches,
            total_candidates_analyzed=total,
            candidates_after_filtering=len(filtered),
            qualifying_matches=len(matches),
            processing_time_seconds=elapsed,
            message=None if matches else NO_QUALIFYING_MESSAGE.format(threshold=self.settings.qualify_threshold),
            chat_id=chat_id,
        )


async def match_candidates(
    job_description: Optional[str],
    chat_id: Optional[str] = None,
    settings: Optional[MatchingSettings] = None,
) -> MatchingResults:
    """Run the matching pipeline against the MongoDB candidate store and the LLM."""
    settings = settings or get_settings()
    job_description = _require_job_description(job_description)
    if not settings.llm_api_key:
        raise ConfigurationError(
            "LLM API key not configured. Set LLM_API_KEY (or OPENAI_API_KEY) in the environment.",
            config_key="LLM_API_KEY",
        )

    pipeline = MatchingPipeline(
        settings=settings,
        load_candidates=fetch_completed_candidates,
        scorer=functools.partial(score_candidate, settings=settings),
    )
    return await pipeline.run(job_description, chat_id=chat_id)
