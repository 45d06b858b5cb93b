# models/response.py
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

KEYWORD_MAX = 25
EXPERIENCE_MAX = 35
EDUCATION_MAX = 20
SKILLS_MAX = 20

SUB_SCORE_MAXIMA = {
    "keyword_score": KEYWORD_MAX,
    "experience_score": EXPERIENCE_MAX,
    "education_score": EDUCATION_MAX,
    "skills_score": SKILLS_MAX,
}


def sub_score_total(scores) -> float:
    """Sum of the four sub-scores, always added in the same order"""
    return sum(scores[name] for name in SUB_SCORE_MAXIMA)


class MatchRequest(BaseModel):
    job_description: Optional[str] = None
    chat_id: Optional[str] = None


# -------- Analysis breakdown --------
class KeywordAnalysis(BaseModel):
    strong_matches: List[str] = Field(default_factory=list)
    partial_matches: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)


class ExperienceAnalysis(BaseModel):
    strong_match_experience: List[str] = Field(default_factory=list)
    partial_match_experience: List[str] = Field(default_factory=list)
    missing_experience: List[str] = Field(default_factory=list)


class EducationAnalysis(BaseModel):
    matching_qualifications: List[str] = Field(default_factory=list)
    additional_qualifications: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)


class SkillsAnalysis(BaseModel):
    matching_technical_skills: List[str] = Field(default_factory=list)
    matching_soft_skills: List[str] = Field(default_factory=list)
    matching_tools: List[str] = Field(default_factory=list)
    missing_critical_skills: List[str] = Field(default_factory=list)


class MatchAnalysis(BaseModel):
    keyword_analysis: KeywordAnalysis = Field(default_factory=KeywordAnalysis)
    experience_analysis: ExperienceAnalysis = Field(default_factory=ExperienceAnalysis)
    education_analysis: EducationAnalysis = Field(default_factory=EducationAnalysis)
    skills_analysis: SkillsAnalysis = Field(default_factory=SkillsAnalysis)
    summary: str = ""


# -------- Results --------
class MatchResult(BaseModel):
    candidate_id: str
    candidate_name: str = ""
    candidate_email: str = ""
    keyword_score: float = Field(ge=0, le=KEYWORD_MAX)
    experience_score: float = Field(ge=0, le=EXPERIENCE_MAX)
    education_score: float = Field(ge=0, le=EDUCATION_MAX)
    skills_score: float = Field(ge=0, le=SKILLS_MAX)
    match_score: float = Field(ge=0, le=100)
    analysis: MatchAnalysis = Field(default_factory=MatchAnalysis)

    @validator('match_score')
    def match_score_is_sum_of_sub_scores(cls, v, values):
        if any(values.get(name) is None for name in SUB_SCORE_MAXIMA):
            return v
        total = sub_score_total(values)
        if v != total:
            raise ValueError(f"match_score {v} does not equal the sum of sub-scores {total}")
        return v


class MatchingResults(BaseModel):
    matches: List[MatchResult] = Field(default_factory=list)
    total_candidates_analyzed: int = 0
    candidates_after_filtering: int = 0
    qualifying_matches: int = 0
    processing_time_seconds: float = 0.0
    message: Optional[str] = None
    chat_id: Optional[str] = None
    match_report_id: Optional[str] = None


class MatchReport(BaseModel):
    match_report_id: str
    chat_id: Optional[str] = None
    job_description: str
    qualify_threshold: float
    results: MatchingResults
    created_at: datetime = Field(default_factory=datetime.utcnow)


# -------- Recruiter chat --------
class MessageType(str, Enum):
    JOB_DESCRIPTION = "job_description"
    CHAT_MESSAGE = "chat_message"
    SEARCH_REFINEMENT = "search_refinement"
    RESUME_ANALYSIS = "resume_analysis"


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatClassifyRequest(BaseModel):
    message: Optional[str] = None
    job_title: Optional[str] = None
    current_job_description: Optional[str] = None
    history: List[ChatTurn] = Field(default_factory=list)


class ChatClassification(BaseModel):
    message_type: MessageType = MessageType.CHAT_MESSAGE
    ai_response_text: str
    extracted_job_description: Optional[str] = None
    extracted_job_title: Optional[str] = None
    trigger_resume_matching: bool = False
    # description matching should run against after this message
    job_description: Optional[str] = None
