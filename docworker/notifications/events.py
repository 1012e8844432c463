import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from docworker.pipeline.models import Document, JobStatus, ProcessingStatus

EVENT_NAME = "document.status.updated"


def compute_progress(
    status: ProcessingStatus, job_counts: dict[JobStatus, int]
) -> int:
    """Percentage of terminal jobs, with fixed values before a plan exists.

    Rounds half up, so 1 of 8 jobs is 13 and 1 of 2 is 50.
    """
    if status is ProcessingStatus.PENDING:
        return 0

    total = sum(job_counts.values())
    if total == 0:
        return {
            ProcessingStatus.PROCESSING: 50,
            ProcessingStatus.COMPLETED: 100,
        }.get(status, 0)

    terminal = job_counts.get(JobStatus.COMPLETED, 0) + job_counts.get(JobStatus.FAILED, 0)
    return math.floor(100 * terminal / total + 0.5)


@dataclass(frozen=True)
class DocumentStatusChanged:
    """Broadcast whenever a document's processing status changes."""

    document_id: int
    title: str
    user_id: int
    status: ProcessingStatus
    progress: int
    message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_document(
        cls,
        document: Document,
        job_counts: dict[JobStatus, int],
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "DocumentStatusChanged":
        return cls(
            document_id=document.id,
            title=document.title,
            user_id=document.user_id,
            status=document.processing_status,
            progress=compute_progress(document.processing_status, job_counts),
            message=message,
            metadata=metadata or {},
        )

    @property
    def name(self) -> str:
        return EVENT_NAME

    @property
    def channels(self) -> list[str]:
        return [f"user.{self.user_id}", f"document.{self.document_id}"]

    def to_payload(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "status": self.status.value,
            "status_label": self.status.label,
            "message": self.message,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
            "progress": self.progress,
        }
