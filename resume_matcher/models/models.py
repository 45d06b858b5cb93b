from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from resume_matcher.helpers.parsing import extract_resume_text


class CandidateStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Candidate(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    extracted_data: Optional[Union[str, Dict[str, Any]]] = None
    status: CandidateStatus = CandidateStatus.PENDING

    @property
    def resume_text(self) -> Optional[str]:
        return extract_resume_text(self.extracted_data)

    @property
    def is_eligible(self) -> bool:
        return self.status == CandidateStatus.COMPLETED and self.extracted_data is not None
