from fastapi import APIRouter, HTTPException, Path
import logging

from prismstudio.models.student_id import (
    DisplayStyle,
    SortedStudentIdsResponse,
    StudentIdInfo,
    StudentIdListRequest,
    StudentIdStats,
)
from prismstudio.utils.response import create_response
from prismstudio.utils.student_id import (
    display_student_id,
    get_cohort_info,
    get_student_id_info,
    get_student_id_stats,
    sort_student_ids,
)

router = APIRouter()

@router.get("/student-ids/{student_id}")
async def get_student_id(
    student_id: str = Path(..., description="Student ID, e.g. PS2506DS148"),
    style: DisplayStyle = DisplayStyle.FULL
):
    """Decode a student ID into cohort information"""
    normalized = student_id.strip().upper()
    info: StudentIdInfo = get_student_id_info(normalized)
    if not info:
        raise HTTPException(
            status_code=404,
            detail=f"Not a valid student ID: {student_id}"
        )

    data = {
        "info": info.model_dump(),
        "cohort": get_cohort_info(normalized).model_dump(),
        "display": display_student_id(normalized, style),
    }
    return create_response(True, data=data)

@router.post("/student-ids/sort", response_model=SortedStudentIdsResponse)
async def sort_ids(request: StudentIdListRequest):
    """Sort student IDs chronologically"""
    return SortedStudentIdsResponse(student_ids=sort_student_ids(request.student_ids))

@router.post("/student-ids/stats", response_model=StudentIdStats)
async def stats(request: StudentIdListRequest):
    """Count student IDs per cohort, domain and year"""
    result = get_student_id_stats(request.student_ids)
    logging.info(f"Student ID stats: {result.total} valid, {result.invalid} invalid")
    return result
