from collections.abc import Iterable, Sequence
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docworker.database.connection import get_connection
from docworker.database.repositories.analysis_result_repository import (
    insert_analysis_result,
)
from docworker.database.serialization import jsonb
from docworker.pipeline.exceptions import InvalidJobTransitionError, JobNotFoundError
from docworker.pipeline.models import (
    AnalysisResult,
    JobSpec,
    JobStatus,
    JobType,
    ProcessingJob,
    parameters_from_dict,
)

_COLUMNS = """
    id, document_id, job_type, status, attempt, backend_job_id, job_parameters,
    result_data, error_message, started_at, completed_at, locked_at, created_at
"""


def _row_to_job(row: dict[str, Any]) -> ProcessingJob:
    job_type = JobType(row["job_type"])
    return ProcessingJob(
        id=row["id"],
        document_id=row["document_id"],
        job_type=job_type,
        parameters=parameters_from_dict(job_type, row["job_parameters"]),
        status=JobStatus(row["status"]),
        attempt=row["attempt"],
        backend_job_id=row["backend_job_id"],
        result_data=row["result_data"],
        error_message=row["error_message"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        locked_at=row["locked_at"],
        created_at=row["created_at"],
    )


def _insert_job(
    cur: psycopg.Cursor[dict[str, Any]], document_id: int, spec: JobSpec, attempt: int
) -> ProcessingJob:
    cur.execute(
        f"""
        INSERT INTO processing_jobs (
            document_id, job_type, status, attempt, job_parameters
        )
        VALUES (%s, %s, 'pending', %s, %s)
        RETURNING {_COLUMNS}
        """,
        (document_id, spec.job_type.value, attempt, jsonb(spec.parameters.to_dict())),
    )
    row = cur.fetchone()
    if row is None:
        raise RuntimeError("INSERT INTO processing_jobs returned no row")
    return _row_to_job(row)


class JobRepository:
    """Database operations for the processing_jobs table.

    Every status update is guarded by the expected current status, so a job
    that was reaped or finished elsewhere is never moved twice.
    """

    def create_jobs(
        self,
        document_id: int,
        specs: Sequence[JobSpec],
        attempt: int = 1,
    ) -> list[ProcessingJob]:
        """Persist a whole job plan in one transaction."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                jobs = [_insert_job(cur, document_id, spec, attempt) for spec in specs]
            conn.commit()
        return jobs

    def find_by_id(self, job_id: int) -> ProcessingJob:
        """Find a job by ID.

        Raises:
            JobNotFoundError: if no job with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM processing_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return _row_to_job(row)

    def list_for_document(self, document_id: int) -> list[ProcessingJob]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM processing_jobs
                    WHERE document_id = %s
                    ORDER BY id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_row_to_job(row) for row in rows]

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> ProcessingJob | None:
        """Claim the oldest unclaimed PENDING job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM processing_jobs
                WHERE status = 'pending'
                  AND locked_at IS NULL
                ORDER BY created_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()

        if row is None:
            conn.rollback()
            return None

        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                UPDATE processing_jobs
                SET locked_at = NOW(), updated_at = NOW()
                WHERE id = %s
                RETURNING locked_at
                """,
                (row["id"],),
            )
            locked = cur.fetchone()
        conn.commit()

        job = _row_to_job(row)
        job.locked_at = locked["locked_at"] if locked else None
        return job

    def mark_processing(self, job: ProcessingJob) -> None:
        self._guarded_update(
            job,
            "status = 'processing', started_at = %s",
            (job.started_at,),
            expected=(JobStatus.PENDING,),
        )

    def set_backend_job_id(self, job: ProcessingJob) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET backend_job_id = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (job.backend_job_id, job.id),
            )
            conn.commit()

    def mark_completed(self, job: ProcessingJob, result: AnalysisResult) -> AnalysisResult:
        """Complete the job and write its result in one transaction."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE processing_jobs
                    SET status = 'completed', result_data = %s, completed_at = %s,
                        updated_at = NOW()
                    WHERE id = %s AND status = 'processing'
                    """,
                    (jsonb(job.result_data), job.completed_at, job.id),
                )
                if cur.rowcount != 1:
                    conn.rollback()
                    raise InvalidJobTransitionError(
                        f"Job {job.id} is no longer processing, result discarded"
                    )
                stored = insert_analysis_result(cur, result)
            conn.commit()
        return stored

    def mark_failed(self, job: ProcessingJob, retry: bool = False) -> ProcessingJob | None:
        """Fail the job and, when ``retry`` is set, create its next attempt.

        Both writes share one transaction, so the document never shows zero
        active jobs between the failure and its retry.

        Returns:
            The new PENDING job, or None when no retry was requested.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE processing_jobs
                    SET status = 'failed', error_message = %s, completed_at = %s,
                        updated_at = NOW()
                    WHERE id = %s AND status IN ('pending', 'processing')
                    """,
                    (job.error_message, job.completed_at, job.id),
                )
                if cur.rowcount != 1:
                    conn.rollback()
                    raise InvalidJobTransitionError(
                        f"Job {job.id} is no longer active, cannot move to failed"
                    )
                retry_job = None
                if retry:
                    spec = JobSpec(job.job_type, job.parameters)
                    retry_job = _insert_job(cur, job.document_id, spec, job.attempt + 1)
            conn.commit()
        return retry_job

    def release_claim(self, job: ProcessingJob) -> bool:
        """Put a claimed job that never started back in the queue."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE processing_jobs
                    SET locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND status = 'pending'
                    """,
                    (job.id,),
                )
                released = cur.rowcount == 1
            conn.commit()
        return released

    def count_active(self, document_id: int) -> int:
        """Count the document's jobs still PENDING or PROCESSING."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT COUNT(*)
                    FROM processing_jobs
                    WHERE document_id = %s AND status IN ('pending', 'processing')
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def count_by_status(self, document_id: int) -> dict[JobStatus, int]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT status, COUNT(*)
                    FROM processing_jobs
                    WHERE document_id = %s
                    GROUP BY status
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return {JobStatus(status): int(count) for status, count in rows}

    def find_stale(
        self, job_types: Iterable[JobType], timeout_seconds: int
    ) -> list[ProcessingJob]:
        """Jobs of the given types stuck longer than the timeout.

        Covers PROCESSING jobs started before the cutoff and claimed PENDING
        jobs whose worker never started them.
        """
        types = [job_type.value for job_type in job_types]
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM processing_jobs
                    WHERE job_type = ANY(%s)
                      AND (
                        (status = 'processing'
                         AND started_at < NOW() - make_interval(secs => %s))
                        OR (status = 'pending'
                         AND locked_at < NOW() - make_interval(secs => %s))
                      )
                    ORDER BY id
                    """,
                    (types, timeout_seconds, timeout_seconds),
                )
                rows = cur.fetchall()
        return [_row_to_job(row) for row in rows]

    def _guarded_update(
        self,
        job: ProcessingJob,
        assignments: str,
        params: tuple[Any, ...],
        expected: tuple[JobStatus, ...],
    ) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE processing_jobs
                    SET {assignments}, updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    """,
                    (*params, job.id, [status.value for status in expected]),
                )
                changed = cur.rowcount == 1
            conn.commit()

        if not changed:
            raise InvalidJobTransitionError(
                f"Job {job.id} was not in {[s.value for s in expected]}, "
                f"cannot move to {job.status.value}"
            )
