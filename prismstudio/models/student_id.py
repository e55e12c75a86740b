from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


class DisplayStyle(str, Enum):
    """How a student ID is rendered for people"""
    FULL = "full"
    SHORT = "short"
    READABLE = "readable"


class StudentIdComponents(BaseModel):
    """Fixed-width pieces of a student / certificate ID"""
    prefix: str = "PS"
    year: str = Field(..., pattern=r"^\d{2}$", description="Last two digits of the year")
    month: str = Field(..., pattern=r"^\d{2}$", description="Month with leading zero")
    course: str = Field(..., pattern=r"^[A-Z]{2,4}$", description="Domain code")
    sequence: str = Field(..., pattern=r"^\d{3}$", description="3-digit sequence")


class StudentIdInfo(BaseModel):
    """Human readable view of a student ID"""
    student_id: str
    year: int
    month: str
    month_number: int
    domain: str
    domain_code: str
    sequence_number: int
    formatted: str
    cohort: str


class CohortInfo(BaseModel):
    cohort_id: str
    cohort_name: str
    year: int
    month: str
    domain: str
    domain_code: str


class StudentIdStats(BaseModel):
    total: int
    invalid: int
    cohorts: Dict[str, int] = {}
    domains: Dict[str, int] = {}
    years: Dict[int, int] = {}


class StudentIdListRequest(BaseModel):
    """Batch of student IDs"""
    student_ids: List[str] = Field(..., max_length=10000)


class SortedStudentIdsResponse(BaseModel):
    student_ids: List[str]
