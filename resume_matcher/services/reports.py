import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from resume_matcher.models.response import (
    EDUCATION_MAX,
    EXPERIENCE_MAX,
    KEYWORD_MAX,
    SKILLS_MAX,
    MatchingResults,
    MatchReport,
    MatchResult,
)

REPORT_COLUMNS = [
    "rank", "candidate_id", "candidate_name", "candidate_email", "match_score",
    "keyword_score", "experience_score", "education_score", "skills_score", "summary",
    "strong_keyword_matches", "missing_keywords", "matching_technical_skills", "matching_tools",
    "missing_critical_skills", "experience_gaps",
]

# CSV column -> (analysis section, field)
LIST_COLUMNS = {
    "strong_keyword_matches": ("keyword_analysis", "strong_matches"),
    "missing_keywords": ("keyword_analysis", "missing_keywords"),
    "matching_technical_skills": ("skills_analysis", "matching_technical_skills"),
    "matching_tools": ("skills_analysis", "matching_tools"),
    "missing_critical_skills": ("skills_analysis", "missing_critical_skills"),
    "experience_gaps": ("experience_analysis", "missing_experience"),
}
LIST_SEPARATOR = "; "

DETAIL_SECTIONS = [
    ("Strong Keyword Matches", ("keyword_analysis", "strong_matches")),
    ("Matching Technical Skills", ("skills_analysis", "matching_technical_skills")),
    ("Matching Tools & Platforms", ("skills_analysis", "matching_tools")),
    ("Relevant Experience", ("experience_analysis", "strong_match_experience")),
    ("Education & Certifications", ("education_analysis", "matching_qualifications")),
]


def build_report(
    job_description: str,
    results: MatchingResults,
    qualify_threshold: float,
    chat_id: Optional[str] = None,
) -> MatchReport:
    """Wrap a finished matching run in a report carrying a fresh report id."""
    match_report_id = f"rep_{uuid.uuid4().hex}"
    return MatchReport(
        match_report_id=match_report_id,
        chat_id=chat_id,
        job_description=job_description,
        qualify_threshold=qualify_threshold,
        results=results.model_copy(update={"match_report_id": match_report_id, "chat_id": chat_id}),
        created_at=datetime.utcnow(),
    )


def report_to_doc(report: MatchReport) -> Dict[str, Any]:
    return report.model_dump()


def _joined(items: List[str]) -> str:
    return LIST_SEPARATOR.join(items)


def report_dataframe(report: MatchReport) -> pd.DataFrame:
    data = []
    for i, m in enumerate(report.results.matches, start=1):
        row = {
            "rank": i,
            "candidate_id": m.candidate_id,
            "candidate_name": m.candidate_name,
            "candidate_email": m.candidate_email,
            "match_score": m.match_score,
            "keyword_score": m.keyword_score,
            "experience_score": m.experience_score,
            "education_score": m.education_score,
            "skills_score": m.skills_score,
            "summary": m.analysis.summary,
        }
        for column, (section, field) in LIST_COLUMNS.items():
            row[column] = _joined(getattr(getattr(m.analysis, section), field))
        data.append(row)
    return pd.DataFrame(data, columns=REPORT_COLUMNS)


def export_csv(report: MatchReport) -> str:
    # header-only file when nothing qualified
    return report_dataframe(report).to_csv(index=False)


def _score_cell(score: float, maximum: int) -> str:
    return f"{score:g}/{maximum} ({round(score / maximum * 100)}%)"


def _bullets(title: str, items: List[str], level: str = "####") -> List[str]:
    if not items:
        return []
    return [f"{level} {title}"] + [f"- {item}" for item in items] + [""]


def _candidate_section(rank: int, match: MatchResult) -> List[str]:
    analysis = match.analysis
    lines = [
        f"### #{rank} - {match.candidate_name or match.candidate_id}",
        f"Email: {match.candidate_email}\n",
        f"**Overall Match: {match.match_score:g}%**\n",
        "| Keywords | Experience | Education | Skills |",
        "|---|---|---|---|",
        f"| {_score_cell(match.keyword_score, KEYWORD_MAX)} | {_score_cell(match.experience_score, EXPERIENCE_MAX)} | "
        f"{_score_cell(match.education_score, EDUCATION_MAX)} | {_score_cell(match.skills_score, SKILLS_MAX)} |\n",
        "#### Match Analysis",
        f"{analysis.summary}\n",
    ]
    for title, (section, field) in DETAIL_SECTIONS:
        lines += _bullets(title, getattr(getattr(analysis, section), field))

    missing_skills = analysis.skills_analysis.missing_critical_skills
    experience_gaps = analysis.experience_analysis.missing_experience
    if missing_skills or experience_gaps:
        lines.append("#### Areas for Development")
        lines += _bullets("Missing Critical Skills", missing_skills, level="#####")
        lines += _bullets("Experience Gaps", experience_gaps, level="#####")
    return lines


def export_markdown(report: MatchReport) -> str:
    results = report.results
    df = report_dataframe(report)

    md_lines = [
        "# Candidate Matching Report",
        f"Generated on: {report.created_at.strftime('%Y-%m-%d %H:%M')} UTC\n",
        "## Executive Summary",
        f"- Candidates analyzed: {results.total_candidates_analyzed}",
        f"- Passed keyword prescreen: {results.candidates_after_filtering}",
        f"- Qualifying matches found: {results.qualifying_matches} "
        f"({report.qualify_threshold:g}%+ match score)",
        f"- Top candidates presented: {len(results.matches)}\n",
    ]

    if not len(df):
        md_lines.append(
            f"> No candidates met the minimum {report.qualify_threshold:g}% match threshold for this position.\n"
        )
        return "\n".join(md_lines)

    md_lines += [
        "## Candidate Rankings",
        "| Rank | Candidate | Email | Match | Keywords | Experience | Education | Skills |",
        "|---:|---|---|---:|---:|---:|---:|---:|",
    ]
    for r in df.itertuples():
        md_lines.append(
            f"| {r.rank} | {r.candidate_name or r.candidate_id} | {r.candidate_email} | {r.match_score:g}% | "
            f"{_score_cell(r.keyword_score, KEYWORD_MAX)} | {_score_cell(r.experience_score, EXPERIENCE_MAX)} | "
            f"{_score_cell(r.education_score, EDUCATION_MAX)} | {_score_cell(r.skills_score, SKILLS_MAX)} |"
        )

    md_lines.append("\n---\n## Detailed Analysis\n")
    for rank, match in enumerate(results.matches, start=1):
        md_lines += _candidate_section(rank, match)
        md_lines.append("---\n")

    return "\n".join(md_lines)
