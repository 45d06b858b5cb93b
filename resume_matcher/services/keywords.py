"""
Keyword extraction and prescreening.

Keywords are pulled from a job description once per matching run and used
to discard clearly irrelevant résumés before any LLM call is made. The
coverage ratio is a recall-biased gate only; it never feeds the final score.
"""
import re
from collections import Counter
from typing import Iterable, List, Set

from resume_matcher.utils.logging_config import get_logger

logger = get_logger(__name__)

TECH_TERMS = (
    # languages
    "javascript", "typescript", "python", "java", "kotlin", "swift", "golang",
    "rust", "ruby", "php", "scala", "c++", "c#", "sql", "html", "css",
    # frameworks and libraries
    "react", "angular", "vue", "next.js", "node.js", "nodejs", "express",
    "django", "flask", "fastapi", "spring", "rails", ".net", "laravel",
    "tailwind", "redux", "graphql", "rest", "api", "microservices",
    # data stores
    "postgresql", "postgres", "mysql", "mongodb", "redis", "elasticsearch",
    "dynamodb", "cassandra", "sqlite", "supabase", "firebase",
    # cloud and tooling
    "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "ansible",
    "jenkins", "ci/cd", "git", "github", "gitlab", "linux", "kafka",
    "spark", "airflow", "tableau", "figma", "jira",
    # data and ml
    "machine learning", "deep learning", "data science", "tensorflow",
    "pytorch", "pandas", "nlp", "llm",
    # methodologies
    "agile", "scrum", "kanban", "tdd", "devops",
)

EXPERIENCE_PATTERN = re.compile(r'\d+\+?\s*(?:years?|yrs?)\s*(?:of\s+)?(?:experience|exp)\b')
SENIOR_PATTERN = re.compile(r'\b(?:senior|lead|principal|staff)\b')
JUNIOR_PATTERN = re.compile(r'\b(?:junior|entry-level|graduate)\b')
WORD_PATTERN = re.compile(r'\b[a-z]{3,}\b')

STOPWORDS = frozenset((
    "the", "and", "for", "with", "you", "your", "are", "our", "will", "this",
    "that", "from", "have", "has", "who", "what", "all", "can", "able",
    "work", "working", "team", "teams", "role", "job", "must", "should",
    "would", "into", "about", "their", "they", "them", "not", "but", "was",
    "were", "been", "being", "more", "other", "such", "also", "including",
    "within", "across", "etc", "per", "any", "some", "well", "strong",
    "looking", "join", "years", "year", "experience",
))

MAX_FREQUENT_WORDS = 20


def _contains_term(text: str, term: str) -> bool:
    pattern = r'(?<![a-z0-9])' + re.escape(term) + r'(?![a-z0-9])'
    return re.search(pattern, text) is not None


def _frequent_words(text: str, limit: int = MAX_FREQUENT_WORDS) -> List[str]:
    counts = Counter(w for w in WORD_PATTERN.findall(text) if w not in STOPWORDS)
    repeated = [(w, c) for w, c in counts.items() if c > 1]
    repeated.sort(key=lambda wc: (-wc[1], wc[0]))
    return [w for w, _ in repeated[:limit]]


def extract_keywords(job_description: str) -> Set[str]:
    """Derive the keyword set used for prescreening from a job description.

    Three sources are unioned: known technology/skill terms, experience-level
    phrases (``5+ years of experience``, seniority words) and the most
    frequent repeated non-stopwords.
    """
    text = (job_description or "").lower()
    keywords: Set[str] = set()

    keywords.update(term for term in TECH_TERMS if _contains_term(text, term))

    keywords.update(' '.join(m.split()) for m in EXPERIENCE_PATTERN.findall(text))
    keywords.update(SENIOR_PATTERN.findall(text))
    keywords.update(JUNIOR_PATTERN.findall(text))

    keywords.update(_frequent_words(text))

    logger.debug(f"Extracted {len(keywords)} keywords from job description")
    return keywords


def keyword_coverage(resume_text: str, keywords: Iterable[str]) -> float:
    keywords = list(keywords)
    if not keywords:
        return 0.0
    text = (resume_text or "").lower()
    hits = sum(1 for k in keywords if k in text)
    return hits / len(keywords)


def passes_prescreen(resume_text: str, keywords: Iterable[str], threshold: float) -> bool:
    return keyword_coverage(resume_text, keywords) >= threshold
