# routers/reports.py
from typing import List

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from resume_matcher.models.response import MatchReport
from resume_matcher.services.db import find_match_report, list_match_reports_for_chat
from resume_matcher.services.reports import export_csv, export_markdown

router = APIRouter(tags=["reports"])

EXPORT_FORMATS = {
    "csv": ("text/csv", "csv", export_csv),
    "markdown": ("text/markdown", "md", export_markdown),
}


async def _get_report_or_404(match_report_id: str) -> MatchReport:
    report_doc = await find_match_report(match_report_id)
    if not report_doc:
        raise HTTPException(status_code=404, detail="Report not found")
    return MatchReport(**report_doc)


@router.get("/reports/{match_report_id}", response_model=MatchReport)
async def get_report(match_report_id: str):
    """Get a stored match report by its ID"""
    return await _get_report_or_404(match_report_id)


@router.get("/chats/{chat_id}/reports", response_model=List[MatchReport])
async def list_reports_by_chat(chat_id: str):
    """Get all match reports generated from a recruiter chat, newest first"""
    reports = await list_match_reports_for_chat(chat_id)
    return [MatchReport(**report) for report in reports]


@router.get("/reports/{match_report_id}/export")
async def export_report(
    match_report_id: str,
    format: str = Query("csv", description="Export format ('csv' or 'markdown')"),
):
    """Download a match report as CSV or Markdown"""
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")

    report = await _get_report_or_404(match_report_id)
    media_type, extension, render = EXPORT_FORMATS[format]
    return PlainTextResponse(
        render(report),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{match_report_id}.{extension}"'},
    )
