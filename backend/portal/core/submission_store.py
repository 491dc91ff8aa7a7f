"""
Submission store: the write target for passing exam sessions.

A submission is a snapshot of what the candidate entered (personal info and
project details) plus the graded answers and score. Snapshots are built from
the session's accumulated form data at the moment it passes.
"""
import logging
from typing import Any, Dict, List, Optional, TypedDict

from sqlalchemy.orm import Session

from portal.core.datetime_utils import utc_now
from portal.models.models import Submission, SubmissionStatus

logger = logging.getLogger(__name__)

PERSONAL_INFO_FIELDS = (
    "fullName",
    "email",
    "phone",
    "collegeName",
    "department",
    "role",
    "year",
    "semester",
)

# Submission project_details key -> session form_data key
PROJECT_DETAIL_FIELDS = {
    "title": "projectTitle",
    "description": "projectDescription",
    "websiteUrl": "websiteUrl",
    "githubRepo": "githubRepo",
}

_ROLE_ALIASES = {
    "UI/UX Designer": {"ui/ux", "ui ux", "ux", "ui", "ui/ux designer", "ui ux designer"},
    "Frontend Developer": {"frontend developer", "frontend", "front-end"},
    "Backend Developer": {"backend developer", "backend"},
    "Python Developer": {"python developer", "python"},
    "Full Stack Developer": {
        "full stack developer",
        "full-stack developer",
        "fullstack",
    },
}


class SubmissionSnapshot(TypedDict):
    """Payload persisted for a passing session."""

    personal_info: Dict[str, Any]
    project_details: Dict[str, Any]
    mcq_answers: List[Dict[str, Any]]
    mcq_score: Dict[str, Any]


def normalize_role(role: Optional[str]) -> Optional[str]:
    """Map free-text role spellings onto the canonical role names."""
    if role is None:
        return None
    cleaned = str(role).strip()
    lowered = cleaned.lower()
    for canonical, aliases in _ROLE_ALIASES.items():
        if lowered in aliases:
            return canonical
    return cleaned or None


def normalize_github_url(url: Optional[str]) -> Optional[str]:
    """Add the https scheme to bare github.com URLs; blank values become None."""
    if url is None:
        return None
    cleaned = str(url).strip()
    if cleaned.startswith("github.com"):
        cleaned = f"https://{cleaned}"
    return cleaned or None


def build_submission_snapshot(
    form_data: Dict[str, Any],
    answer_detail: List[Dict[str, Any]],
    mcq_score: Dict[str, Any],
) -> SubmissionSnapshot:
    """
    Build the submission payload from a session's accumulated form data.

    Args:
        form_data: The session's merged form data
        answer_detail: Graded answers, one dict per question
        mcq_score: The assessment score recorded on the session

    Returns:
        The snapshot to persist
    """
    personal_info = {field: form_data.get(field) for field in PERSONAL_INFO_FIELDS}
    personal_info["role"] = normalize_role(personal_info["role"])

    project_details = {
        target: form_data.get(source) for target, source in PROJECT_DETAIL_FIELDS.items()
    }
    project_details["githubRepo"] = normalize_github_url(project_details["githubRepo"])

    return SubmissionSnapshot(
        personal_info=personal_info,
        project_details=project_details,
        mcq_answers=[dict(answer) for answer in answer_detail],
        mcq_score=dict(mcq_score),
    )


class SubmissionStore:
    """Persists submissions within the caller's transaction.

    ``create`` flushes to obtain the new id but does not commit, so the
    workflow can commit the submission and the session update together.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, snapshot: SubmissionSnapshot, exam_session_id: int) -> int:
        """Stage a submitted record for a session and return its id.

        Raises:
            IntegrityError: If the session already has a submission
        """
        submission = Submission(
            exam_session_id=exam_session_id,
            personal_info=snapshot["personal_info"],
            project_details=snapshot["project_details"],
            mcq_answers=snapshot["mcq_answers"],
            mcq_score=snapshot["mcq_score"],
            status=SubmissionStatus.SUBMITTED,
            submitted_at=utc_now(),
        )
        self.db.add(submission)
        self.db.flush()
        logger.debug(f"Staged submission {submission.id} for exam session {exam_session_id}")
        return submission.id

    def get(self, submission_id: int) -> Optional[Submission]:
        return self.db.query(Submission).filter(Submission.id == submission_id).first()
