import asyncio
from unittest.mock import AsyncMock

import pytest

from resume_matcher.models.response import MatchResult
from resume_matcher.models.settings import MatchingSettings
from resume_matcher.services.matching import (
    NO_CANDIDATES_MESSAGE,
    NO_PRESCREEN_MESSAGE,
    MatchingPipeline,
    chunked,
    match_candidates,
)
from resume_matcher.utils.exceptions import (
    ConfigurationError,
    InvalidInputError,
    ScoringError,
    ScoringErrorKind,
    StoreUnavailableError,
)

JOB_DESCRIPTION = "Senior React developer with TypeScript and Node.js. React and TypeScript required."
IRRELEVANT_RESUME = "Certified accountant specialising in payroll and tax audits"


def result_for(candidate, score):
    keyword = min(25, score)
    experience = min(35, score - keyword)
    education = min(20, score - keyword - experience)
    skills = score - keyword - experience - education
    return MatchResult(
        candidate_id=candidate.id,
        candidate_name=candidate.name,
        candidate_email=candidate.email,
        keyword_score=keyword,
        experience_score=experience,
        education_score=education,
        skills_score=skills,
        match_score=score,
    )


class FakeScorer:
    """Scores candidates from a lookup table and records call ordering."""

    def __init__(self, scores=None, default=80, failures=None, events=None):
        self.scores = scores or {}
        self.default = default
        self.failures = dict(failures or {})
        self.events = events if events is not None else []
        self.calls = {}

    async def __call__(self, job_description, candidate, resume_text):
        self.calls[candidate.id] = self.calls.get(candidate.id, 0) + 1
        self.events.append(("start", candidate.id))
        await asyncio.sleep(0)
        self.events.append(("end", candidate.id))

        remaining = self.failures.get(candidate.id, 0)
        if remaining == "always" or (isinstance(remaining, int) and remaining > 0):
            if remaining != "always":
                self.failures[candidate.id] = remaining - 1
            raise ScoringError("LLM endpoint returned HTTP 500", kind=ScoringErrorKind.TRANSPORT_ERROR, status_code=500)
        return result_for(candidate, self.scores.get(candidate.id, self.default))


@pytest.fixture
def events():
    return []


@pytest.fixture
def fake_sleep(events):
    async def _sleep(delay):
        events.append(("sleep", delay))
    return _sleep


def build_pipeline(settings, candidates, scorer, sleep):
    loader = AsyncMock(return_value=candidates)
    return MatchingPipeline(settings=settings, load_candidates=loader, scorer=scorer, sleep=sleep), loader


class TestMatchingPipeline:
    """Test cases for the batch matching orchestrator"""

    @pytest.mark.asyncio
    async def test_empty_store(self, settings, fake_sleep):
        scorer = FakeScorer()
        pipeline, _ = build_pipeline(settings, [], scorer, fake_sleep)

        results = await pipeline.run("Senior React Developer needed for a fintech team")

        assert results.matches == []
        assert results.total_candidates_analyzed == 0
        assert results.qualifying_matches == 0
        assert results.message == NO_CANDIDATES_MESSAGE
        assert scorer.calls == {}

    @pytest.mark.asyncio
    async def test_all_fail_prescreen(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate(i, IRRELEVANT_RESUME) for i in range(3)]
        scorer = FakeScorer()
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert results.matches == []
        assert results.total_candidates_analyzed == 3
        assert results.candidates_after_filtering == 0
        assert results.message == NO_PRESCREEN_MESSAGE
        assert scorer.calls == {}

    @pytest.mark.asyncio
    async def test_only_prescreened_candidates_are_scored(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate("good"), make_candidate("bad", IRRELEVANT_RESUME)]
        scorer = FakeScorer()
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert set(scorer.calls) == {"good"}
        assert results.candidates_after_filtering == 1
        assert [m.candidate_id for m in results.matches] == ["good"]

    @pytest.mark.asyncio
    async def test_empty_resume_text_is_excluded(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate("good"), make_candidate("empty", {}), make_candidate("blank", {"text": "  "})]
        scorer = FakeScorer()
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert set(scorer.calls) == {"good"}
        assert results.total_candidates_analyzed == 3
        assert results.candidates_after_filtering == 1

    @pytest.mark.asyncio
    async def test_threshold_boundary(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate("at"), make_candidate("below")]
        scorer = FakeScorer(scores={"at": 50, "below": 49})
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert [m.candidate_id for m in results.matches] == ["at"]
        assert all(m.match_score >= settings.qualify_threshold for m in results.matches)

    @pytest.mark.asyncio
    async def test_no_qualifying_matches_has_message(self, settings, make_candidate, fake_sleep):
        scorer = FakeScorer(default=20)
        pipeline, _ = build_pipeline(settings, [make_candidate("c1")], scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert results.matches == []
        assert results.candidates_after_filtering == 1
        assert "minimum match score of 50" in results.message

    @pytest.mark.asyncio
    async def test_results_sorted_descending_with_stable_ties(self, settings, make_candidate, fake_sleep):
        ids = ["a", "b", "c", "d", "e", "f"]
        scorer = FakeScorer(scores={"a": 60, "b": 90, "c": 70, "d": 75, "e": 70, "f": 55})
        pipeline, _ = build_pipeline(settings, [make_candidate(i) for i in ids], scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert [m.candidate_id for m in results.matches] == ["b", "d", "c", "e", "a", "f"]
        scores = [m.match_score for m in results.matches]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_accounting_invariants(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate(i) for i in range(7)] + [make_candidate("x", IRRELEVANT_RESUME)]
        scorer = FakeScorer(scores={"0": 30, "1": 45}, failures={"2": "always"})
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert results.total_candidates_analyzed == 8
        assert results.candidates_after_filtering == 7
        assert results.qualifying_matches == len(results.matches) == 4
        assert results.qualifying_matches <= results.candidates_after_filtering <= results.total_candidates_analyzed
        assert results.processing_time_seconds >= 0

    @pytest.mark.asyncio
    async def test_batching_is_sequential_with_delay(self, settings, make_candidate, events, fake_sleep):
        candidates = [make_candidate(f"c{i:02d}") for i in range(12)]
        scorer = FakeScorer(events=events)
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert len(results.matches) == 12

        batches, current = [], []
        for kind, value in events:
            if kind == "sleep":
                assert value == settings.batch_delay_seconds
                batches.append(current)
                current = []
            else:
                current.append((kind, value))
        batches.append(current)

        assert [len([e for e in b if e[0] == "start"]) for b in batches] == [5, 5, 2]
        for batch in batches:
            starts = [i for i, e in enumerate(batch) if e[0] == "start"]
            ends = [i for i, e in enumerate(batch) if e[0] == "end"]
            # every call of a batch is dispatched before any of them finishes
            assert max(starts) < min(ends)
            assert {v for k, v in batch if k == "start"} == {v for k, v in batch if k == "end"}

    @pytest.mark.asyncio
    async def test_single_batch_has_no_delay(self, settings, make_candidate, events, fake_sleep):
        scorer = FakeScorer(events=events)
        pipeline, _ = build_pipeline(settings, [make_candidate(i) for i in range(5)], scorer, fake_sleep)

        await pipeline.run(JOB_DESCRIPTION)

        assert not [e for e in events if e[0] == "sleep"]

    @pytest.mark.asyncio
    async def test_failing_candidate_is_isolated(self, settings, make_candidate, events, fake_sleep):
        candidates = [make_candidate("x"), make_candidate("y"), make_candidate("z")]
        scorer = FakeScorer(scores={"y": 70, "z": 65}, failures={"x": "always"}, events=events)
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert [m.candidate_id for m in results.matches] == ["y", "z"]
        assert results.matches[0] == result_for(candidates[1], 70)
        assert scorer.calls == {"x": 3, "y": 1, "z": 1}
        assert [v for k, v in events if k == "sleep"] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_retry_then_success_matches_first_time_success(self, settings, make_candidate, fake_sleep):
        candidate = make_candidate("flaky")

        flaky_scorer = FakeScorer(scores={"flaky": 72}, failures={"flaky": 2})
        flaky_pipeline, _ = build_pipeline(settings, [candidate], flaky_scorer, fake_sleep)
        steady_pipeline, _ = build_pipeline(settings, [candidate], FakeScorer(scores={"flaky": 72}), fake_sleep)

        flaky = await flaky_pipeline.run(JOB_DESCRIPTION)
        steady = await steady_pipeline.run(JOB_DESCRIPTION)

        assert flaky_scorer.calls == {"flaky": 3}
        assert flaky.matches == steady.matches

    @pytest.mark.asyncio
    async def test_unexpected_scorer_error_is_isolated(self, settings, make_candidate, fake_sleep):
        async def scorer(job_description, candidate, resume_text):
            if candidate.id == "broken":
                raise RuntimeError("unexpected")
            return result_for(candidate, 60)

        pipeline, _ = build_pipeline(settings, [make_candidate("broken"), make_candidate("ok")], scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert [m.candidate_id for m in results.matches] == ["ok"]

    @pytest.mark.asyncio
    async def test_ineligible_candidates_are_ignored(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate("done"), make_candidate("pending", status="pending")]
        scorer = FakeScorer()
        pipeline, _ = build_pipeline(settings, candidates, scorer, fake_sleep)

        results = await pipeline.run(JOB_DESCRIPTION)

        assert results.total_candidates_analyzed == 1
        assert set(scorer.calls) == {"done"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("job_description", ["", "   ", None])
    async def test_invalid_job_description(self, settings, fake_sleep, job_description):
        pipeline, loader = build_pipeline(settings, [], FakeScorer(), fake_sleep)

        with pytest.raises(InvalidInputError):
            await pipeline.run(job_description)
        loader.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_is_fatal(self, settings, fake_sleep):
        loader = AsyncMock(side_effect=StoreUnavailableError("Failed to fetch candidates"))
        pipeline = MatchingPipeline(settings=settings, load_candidates=loader, scorer=FakeScorer(), sleep=fake_sleep)

        with pytest.raises(StoreUnavailableError):
            await pipeline.run(JOB_DESCRIPTION)

    @pytest.mark.asyncio
    async def test_prescreen_is_deterministic(self, settings, make_candidate, fake_sleep):
        candidates = [make_candidate(i) for i in range(4)] + [make_candidate("x", IRRELEVANT_RESUME)]
        pipeline, _ = build_pipeline(settings, candidates, FakeScorer(), fake_sleep)

        from resume_matcher.services.keywords import extract_keywords
        first = pipeline.prescreen(candidates, extract_keywords(JOB_DESCRIPTION))
        second = pipeline.prescreen(candidates, extract_keywords(JOB_DESCRIPTION))

        assert [c.id for c, _ in first] == [c.id for c, _ in second] == ["0", "1", "2", "3"]


class TestMatchCandidates:
    """Test cases for the store-backed entry point"""

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            await match_candidates(JOB_DESCRIPTION, settings=MatchingSettings(llm_api_key=None))

    @pytest.mark.asyncio
    async def test_validates_input_before_configuration(self):
        with pytest.raises(InvalidInputError):
            await match_candidates("", settings=MatchingSettings(llm_api_key=None))


def test_chunked():
    assert chunked(list(range(12)), 5) == [[0, 1, 2, 3, 4], [5, 6, 7, 8, 9], [10, 11]]
    assert chunked([], 5) == []
    with pytest.raises(ValueError):
        chunked([1], 0)
