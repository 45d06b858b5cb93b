import os

# Must be set before resume_matcher.main configures logging
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest  # noqa: E402

from resume_matcher.models.models import Candidate, CandidateStatus  # noqa: E402
from resume_matcher.models.settings import MatchingSettings  # noqa: E402


@pytest.fixture
def settings():
    return MatchingSettings(
        llm_api_key="test-key",
        llm_base_url="https://llm.test/v1",
        batch_size=5,
        batch_delay_seconds=0.5,
        qualify_threshold=50,
        prescreen_threshold=0.15,
        max_retries=2,
    )


@pytest.fixture
def make_candidate():
    def _make(candidate_id, resume_text="Senior React developer with TypeScript and Node.js", **kwargs):
        kwargs.setdefault("name", f"Candidate {candidate_id}")
        kwargs.setdefault("email", f"{candidate_id}@example.com")
        kwargs.setdefault("status", CandidateStatus.COMPLETED)
        return Candidate(id=str(candidate_id), extracted_data=resume_text, **kwargs)
    return _make


@pytest.fixture
def scoring_payload():
    return {
        "match_score": 80,
        "keyword_score": 20,
        "experience_score": 30,
        "education_score": 15,
        "skills_score": 15,
        "analysis": {
            "keyword_analysis": {
                "strong_matches": ["React", "TypeScript"],
                "partial_matches": ["Vue"],
                "missing_keywords": ["GraphQL"],
            },
            "experience_analysis": {
                "strong_match_experience": ["5 years building React SPAs"],
                "partial_match_experience": [],
                "missing_experience": ["team leadership"],
            },
            "education_analysis": {
                "matching_qualifications": ["BSc Computer Science"],
                "additional_qualifications": [],
                "gaps": [],
            },
            "skills_analysis": {
                "matching_technical_skills": ["React", "Node.js"],
                "matching_soft_skills": ["communication"],
                "matching_tools": ["Git"],
                "missing_critical_skills": [],
            },
            "summary": "Strong frontend engineer with relevant React experience.",
        },
    }
