from typing import Any, Dict, List, Optional

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from resume_matcher.models.models import Candidate, CandidateStatus
from resume_matcher.models.settings import get_settings
from resume_matcher.utils.exceptions import StoreUnavailableError
from resume_matcher.utils.logging_config import get_logger, log_function_call

logger = get_logger(__name__)

_settings = get_settings()

logger.info(f"Initializing MongoDB connection to database: {_settings.db_name}")

# Motor connects lazily; constructing the client does not touch the network
client = motor.motor_asyncio.AsyncIOMotorClient(_settings.mongo_details)
db = client[_settings.db_name]

# Collections
candidates_coll = db["candidates"]
reports_coll = db["match_reports"]

CANDIDATE_PROJECTION = {"_id": 1, "id": 1, "name": 1, "email": 1, "extracted_data": 1, "status": 1}


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    await candidates_coll.create_index([("status", ASCENDING)])
    logger.debug("Created index on candidates.status")

    await reports_coll.create_index([("match_report_id", ASCENDING)], unique=True)
    await reports_coll.create_index([("chat_id", ASCENDING), ("created_at", DESCENDING)])
    logger.debug("Created indexes on match_reports")

    logger.info("Database index initialization completed")


def _candidate_from_doc(doc: Dict[str, Any]) -> Candidate:
    return Candidate(
        id=str(doc.get("id") or doc.get("_id")),
        name=doc.get("name") or "",
        email=doc.get("email") or "",
        extracted_data=doc.get("extracted_data"),
        status=doc.get("status", CandidateStatus.COMPLETED.value),
    )


@log_function_call
async def fetch_completed_candidates() -> List[Candidate]:
    """Load every candidate whose résumé extraction has completed."""
    query = {"status": CandidateStatus.COMPLETED.value, "extracted_data": {"$ne": None}}
    try:
        cursor = candidates_coll.find(query, CANDIDATE_PROJECTION)
        docs = await cursor.to_list(length=None)
    except PyMongoError as e:
        raise StoreUnavailableError(
            "Failed to fetch candidates",
            operation="find",
            collection="candidates",
            cause=e,
        ) from e

    candidates = []
    for doc in docs:
        try:
            candidates.append(_candidate_from_doc(doc))
        except ValueError as e:
            logger.warning(f"Skipping malformed candidate document {doc.get('_id')}: {e}")
    return candidates


async def save_match_report(report_doc: Dict[str, Any]) -> None:
    try:
        await reports_coll.insert_one(report_doc)
    except PyMongoError as e:
        raise StoreUnavailableError(
            "Failed to save match report",
            operation="insert_one",
            collection="match_reports",
            cause=e,
        ) from e


async def find_match_report(match_report_id: str) -> Optional[Dict[str, Any]]:
    try:
        return await reports_coll.find_one({"match_report_id": match_report_id})
    except PyMongoError as e:
        raise StoreUnavailableError(
            "Failed to load match report",
            operation="find_one",
            collection="match_reports",
            cause=e,
        ) from e


async def list_match_reports_for_chat(chat_id: str) -> List[Dict[str, Any]]:
    try:
        cursor = reports_coll.find({"chat_id": chat_id}).sort("created_at", -1)
        return await cursor.to_list(length=None)
    except PyMongoError as e:
        raise StoreUnavailableError(
            "Failed to list match reports",
            operation="find",
            collection="match_reports",
            cause=e,
        ) from e
