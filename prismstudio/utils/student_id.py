"""
Student ID codec for the PrismStudio internship platform.

Format: PS + YY + MM + domain code + sequence, e.g. PS2506DS148 is
June 2025, Data Science, student #148. Certificate IDs share the format.
"""
import logging
import re
from collections import Counter
from datetime import date
from typing import Iterable, List, Optional

from prismstudio.models.student_id import (
    CohortInfo,
    DisplayStyle,
    StudentIdComponents,
    StudentIdInfo,
    StudentIdStats,
)

STUDENT_ID_PATTERN = re.compile(r"^PS(\d{2})(\d{2})([A-Z]{2,4})(\d{3})$", re.ASCII)

DOMAIN_CODES = {
    "WD": "Web Development",
    "UD": "UI/UX Design",
    "DS": "Data Science",
    "PD": "PCB Design",
    "EP": "Embedded Programming",
    "FV": "FPGA & Verilog",
}

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

MIN_YEAR, MAX_YEAR = 20, 50
MIN_SEQUENCE, MAX_SEQUENCE = 1, 999


def parse_student_id(student_id: str) -> Optional[StudentIdComponents]:
    """
    Split a student ID into its components, None when the shape is wrong
    """
    if not student_id:
        return None

    match = STUDENT_ID_PATTERN.fullmatch(student_id)
    if not match:
        return None

    year, month, course, sequence = match.groups()
    return StudentIdComponents(year=year, month=month, course=course, sequence=sequence)


def format_student_id(components: StudentIdComponents) -> str:
    return f"{components.prefix}{components.year}{components.month}{components.course}{components.sequence}"


def is_valid_student_id(student_id: str) -> bool:
    """
    Shape plus plausible year (2020-2050), month, known domain and sequence
    """
    components = parse_student_id(student_id)
    if not components:
        return False

    if not MIN_YEAR <= int(components.year) <= MAX_YEAR:
        return False

    if not 1 <= int(components.month) <= 12:
        return False

    if components.course not in DOMAIN_CODES:
        return False

    return MIN_SEQUENCE <= int(components.sequence) <= MAX_SEQUENCE


def get_student_id_info(student_id: str) -> Optional[StudentIdInfo]:
    if not is_valid_student_id(student_id):
        return None

    components = parse_student_id(student_id)
    year = 2000 + int(components.year)
    month_number = int(components.month)
    month = MONTH_NAMES[month_number - 1]
    domain = DOMAIN_CODES[components.course]
    sequence_number = int(components.sequence)

    return StudentIdInfo(
        student_id=student_id,
        year=year,
        month=month,
        month_number=month_number,
        domain=domain,
        domain_code=components.course,
        sequence_number=sequence_number,
        formatted=f"PS-{year}-{month}-{components.course}-{sequence_number}",
        cohort=f"{month} {year} {domain}",
    )


def get_cohort_info(student_id: str) -> Optional[CohortInfo]:
    info = get_student_id_info(student_id)
    if not info:
        return None

    return CohortInfo(
        cohort_id=f"{info.year}{info.month_number:02d}{info.domain_code}",
        cohort_name=f"{info.month} {info.year} - {info.domain}",
        year=info.year,
        month=info.month,
        domain=info.domain,
        domain_code=info.domain_code,
    )


def sort_key(student_id: str) -> Optional[str]:
    """Chronological key: year, month, domain, sequence"""
    components = parse_student_id(student_id)
    if not components:
        return None
    return f"{components.year}{components.month}{components.course}{components.sequence}"


def sort_student_ids(student_ids: Iterable[str]) -> List[str]:
    """
    Sort IDs chronologically without mutating the input.

    sorted() is stable so equal keys keep their input order; IDs that do not
    parse go last, also in input order.
    """
    def _key(student_id: str):
        key = sort_key(student_id)
        return (1, "") if key is None else (0, key)

    return sorted(student_ids, key=_key)


def generate_student_id(domain_code: str, sequence_number: int, today: Optional[date] = None) -> str:
    """
    Build the ID a new student would receive today.

    The database assigns the real sequence; this only renders the format.
    """
    if domain_code not in DOMAIN_CODES:
        raise ValueError(f"Unknown domain code: {domain_code}")
    if not MIN_SEQUENCE <= sequence_number <= MAX_SEQUENCE:
        raise ValueError(f"Sequence out of range: {sequence_number}")

    today = today or date.today()
    return f"PS{today.year % 100:02d}{today.month:02d}{domain_code}{sequence_number:03d}"


def get_student_id_stats(student_ids: Iterable[str]) -> StudentIdStats:
    student_ids = list(student_ids)
    cohorts, domains, years = Counter(), Counter(), Counter()

    valid = 0
    for student_id in student_ids:
        info = get_student_id_info(student_id)
        if not info:
            continue
        valid += 1
        cohorts[f"{info.year}-{info.month_number:02d}-{info.domain_code}"] += 1
        domains[info.domain_code] += 1
        years[info.year] += 1

    logging.debug(f"Computed stats for {len(student_ids)} student IDs ({valid} valid)")

    return StudentIdStats(
        total=valid,
        invalid=len(student_ids) - valid,
        cohorts=dict(cohorts),
        domains=dict(domains),
        years=dict(years),
    )


def display_student_id(student_id: str, style: DisplayStyle = DisplayStyle.FULL) -> str:
    info = get_student_id_info(student_id)
    if not info:
        return student_id

    if style == DisplayStyle.SHORT:
        return student_id
    if style == DisplayStyle.READABLE:
        return info.formatted
    return f"{student_id} ({info.cohort})"
