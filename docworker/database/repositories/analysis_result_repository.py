from decimal import Decimal
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docworker.database.connection import get_connection
from docworker.database.serialization import jsonb
from docworker.pipeline.models import AnalysisResult, Backend, JobType

_COLUMNS = """
    id, document_id, analysis_type, raw_results, processed_data,
    confidence_score, metadata, created_at
"""


def _row_to_result(row: dict[str, Any]) -> AnalysisResult:
    confidence = row["confidence_score"]
    return AnalysisResult(
        id=row["id"],
        document_id=row["document_id"],
        analysis_type=JobType(row["analysis_type"]),
        raw_results=row["raw_results"] or {},
        processed_data=row["processed_data"] or {},
        confidence_score=float(confidence) if isinstance(confidence, Decimal) else confidence,
        metadata=row["metadata"] or {},
        created_at=row["created_at"],
    )


def insert_analysis_result(
    cur: psycopg.Cursor[Any], result: AnalysisResult
) -> AnalysisResult:
    """Insert a result on an open cursor; the caller owns the transaction."""
    cur.execute(
        f"""
        INSERT INTO analysis_results (
            document_id, analysis_type, raw_results, processed_data,
            confidence_score, metadata
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (
            result.document_id,
            result.analysis_type.value,
            jsonb(result.raw_results),
            jsonb(result.processed_data),
            result.confidence_score,
            jsonb(result.metadata),
        ),
    )
    row = cur.fetchone()
    if row is None:
        raise RuntimeError("INSERT INTO analysis_results returned no row")
    return _row_to_result(row)


class AnalysisResultRepository:
    """Read access to the write-once analysis_results table."""

    def list_for_document(self, document_id: int) -> list[AnalysisResult]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM analysis_results
                    WHERE document_id = %s
                    ORDER BY id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_row_to_result(row) for row in rows]

    def find_ocr_results(self, document_id: int) -> list[AnalysisResult]:
        """OCR-stage results of a document, oldest first."""
        ocr_types = [job_type.value for job_type in JobType.for_backend(Backend.OCR)]
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM analysis_results
                    WHERE document_id = %s AND analysis_type = ANY(%s)
                    ORDER BY id
                    """,
                    (document_id, ocr_types),
                )
                rows = cur.fetchall()
        return [_row_to_result(row) for row in rows]
