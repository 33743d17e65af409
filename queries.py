"""
Read-only lookups that join placements to students and schools.

References are resolved by linear scan. A placement whose student or
school no longer exists is still returned; the missing side shows the
NOT_AVAILABLE sentinel instead.
"""

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from entity_store import EntityStore
from models import Placement, School, Student

NOT_AVAILABLE = 'N/A'
MIN_LOOKUP_LENGTH = 2
PLACEMENT_STATUSES = ('placed', 'pending', 'rejected')


def percentage(part: int, whole: int) -> int:
    """Whole percent, halves rounded up (1 of 8 is 13)."""
    if not whole:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def format_date(value) -> str:
    """dd/mm/yyyy, as shown on the dashboard tables."""
    if value is None:
        return ''
    return value.strftime('%d/%m/%Y')


def full_name(student: Student) -> str:
    return f"{student.first_name} {student.last_name}"


def find_student(store: EntityStore, student_id: str) -> Optional[Student]:
    return store.students.get(student_id)


def find_school(store: EntityStore, school_id: str) -> Optional[School]:
    return store.schools.get(school_id)


def resolve_placement(store: EntityStore, placement: Placement, include_notes: bool = True) -> Dict:
    student = find_student(store, placement.student_id)
    school = find_school(store, placement.school_id)
    row = {
        'id': placement.id,
        'studentName': full_name(student) if student else NOT_AVAILABLE,
        'studentId': student.student_id if student else NOT_AVAILABLE,
        'school': school.name if school else NOT_AVAILABLE,
        'program': placement.program,
        'placementDate': format_date(placement.placement_date),
        'status': placement.status,
    }
    if include_notes:
        row['notes'] = placement.notes
    return row


def resolved_placements(store: EntityStore, include_notes: bool = True) -> List[Dict]:
    return [resolve_placement(store, p, include_notes) for p in store.placements.list()]


def orphaned_placements(store: EntityStore) -> List[Placement]:
    """Placements whose student or school reference no longer resolves."""
    return store.placements.find(
        lambda p: find_student(store, p.student_id) is None or find_school(store, p.school_id) is None
    )


def _contains(value: Optional[str], query: str) -> bool:
    return value is not None and query in value.lower()


def search_students(store: EntityStore, query: str) -> List[Student]:
    query = query.lower()
    return store.students.find(lambda s: (
        _contains(s.student_id, query) or
        _contains(s.first_name, query) or
        _contains(s.last_name, query) or
        _contains(s.class_name, query)
    ))


def search_placements(store: EntityStore, query: str) -> List[Placement]:
    query = query.lower()

    def matches(placement):
        student = find_student(store, placement.student_id)
        school = find_school(store, placement.school_id)
        return (
            (student is not None and (
                _contains(student.student_id, query) or
                _contains(student.first_name, query) or
                _contains(student.last_name, query)
            )) or
            (school is not None and _contains(school.name, query)) or
            _contains(placement.program, query)
        )

    return store.placements.find(matches)


def lookup_student_placements(store: EntityStore, query: str) -> Dict:
    """
    Placement search box: find students by id or name and show where each was placed.

    Queries shorter than MIN_LOOKUP_LENGTH return the 'too_short' state
    without filtering anything.
    """
    query = (query or '').strip().lower()
    if len(query) < MIN_LOOKUP_LENGTH:
        return {
            'state': 'too_short',
            'message': f'Please enter at least {MIN_LOOKUP_LENGTH} characters to search',
            'results': [],
        }

    students = store.students.find(lambda s: (
        _contains(s.student_id, query) or
        _contains(s.first_name, query) or
        _contains(s.last_name, query)
    ))
    if not students:
        return {'state': 'no_matches', 'message': 'No students found matching your search', 'results': []}

    results = []
    for student in students:
        placement = next((p for p in store.placements.records if p.student_id == student.id), None)
        entry = {
            'id': student.id,
            'studentId': student.student_id,
            'studentName': full_name(student),
            'class': student.class_name,
            'placed': placement is not None,
        }
        if placement is not None:
            school = find_school(store, placement.school_id)
            entry.update({
                'school': school.name if school else NOT_AVAILABLE,
                'program': placement.program,
                'status': placement.status,
                'placementDate': format_date(placement.placement_date),
            })
        results.append(entry)
    return {'state': 'ok', 'message': f'{len(results)} student(s) found', 'results': results}


# Reporting

def placements_by_status(store: EntityStore) -> Dict[str, int]:
    counts = Counter(p.status for p in store.placements.records)
    return {status: counts.get(status, 0) for status in PLACEMENT_STATUSES}


def placements_by_program(store: EntityStore) -> Dict[str, int]:
    return dict(Counter(p.program for p in store.placements.records))


def placements_by_school(store: EntityStore) -> Dict[str, int]:
    """Counts per school name; placements with a dangling school are left out."""
    counts = Counter()
    for placement in store.placements.records:
        school = find_school(store, placement.school_id)
        if school is not None:
            counts[school.name] += 1
    return dict(counts)


def placement_summary(store: EntityStore) -> Dict:
    total_students = len(store.students)
    placed = placements_by_status(store)['placed']
    rate = percentage(placed, total_students)
    return {
        'totalStudents': total_students,
        'placedStudents': placed,
        'placementRate': rate,
    }


def build_report(store: EntityStore) -> Dict:
    by_school = placements_by_school(store)
    return {
        'summary': placement_summary(store),
        'byStatus': placements_by_status(store),
        'bySchool': by_school,
        'byProgram': placements_by_program(store),
        'unresolvedSchools': len(store.placements) - sum(by_school.values()),
        'generatedOn': datetime.now(timezone.utc).isoformat(),
    }


def detailed_report(store: EntityStore) -> Dict:
    return {
        'summary': placement_summary(store),
        'placements': resolved_placements(store, include_notes=False),
    }


def students_by_class(store: EntityStore) -> Dict[str, int]:
    return dict(sorted(Counter(s.class_name for s in store.students.records).items()))


def dashboard_stats(store: EntityStore) -> Dict:
    attendance = store.attendance.records
    present = sum(1 for record in attendance if record.present)
    return {
        'totalStudents': len(store.students),
        'totalTeachers': len(store.teachers),
        'attendanceRate': percentage(present, len(attendance)),
        'placedStudents': placements_by_status(store)['placed'],
        'studentsByClass': students_by_class(store),
    }
