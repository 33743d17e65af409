"""
Record types for every collection kept by the entity store.

Each model maps to one durable slot (see entity_store.COLLECTION_SLOTS).
Stored JSON keeps the camelCase keys used by the dashboard front end
(studentId, firstName, class, createdAt ...); Python code uses the
snake_case attribute names.
"""

from datetime import date, datetime
from typing import ClassVar, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Gender = Literal["Male", "Female"]
PlacementStatus = Literal["placed", "pending", "rejected"]


def _normalize_gender(value):
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in ("male", "m", "boy"):
            return "Male"
        if cleaned in ("female", "f", "girl"):
            return "Female"
    return value


class RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PatchModel(BaseModel):
    """Partial update; only fields the caller actually sent are applied."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    # Store-owned keys; a full record sent back as a patch keeps its id and createdAt
    READ_ONLY: ClassVar[tuple] = ("id", "createdAt", "created_at")

    @model_validator(mode="before")
    @classmethod
    def drop_read_only(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if k not in cls.READ_ONLY}
        return data

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Students

class StudentImport(RecordModel):
    """Student as it arrives from a spreadsheet row."""
    student_id: str = Field(..., min_length=1, alias="studentId")
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: str = Field(..., min_length=1, alias="lastName")
    gender: Gender
    class_name: str = Field(..., min_length=1, alias="class")
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    parent_name: Optional[str] = Field(None, alias="parentName")
    parent_phone: Optional[str] = Field(None, alias="parentPhone")
    parent_email: Optional[str] = Field(None, alias="parentEmail")
    status: str = "Active"

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        return _normalize_gender(value)


class StudentCreate(StudentImport):
    """Student entered through the add-student form."""
    date_of_birth: date = Field(..., alias="dateOfBirth")
    parent_phone: str = Field(..., min_length=1, alias="parentPhone")


class Student(StudentImport):
    id: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class StudentUpdate(PatchModel):
    student_id: Optional[str] = Field(None, alias="studentId")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    gender: Optional[Gender] = None
    class_name: Optional[str] = Field(None, alias="class")
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    parent_name: Optional[str] = Field(None, alias="parentName")
    parent_phone: Optional[str] = Field(None, alias="parentPhone")
    parent_email: Optional[str] = Field(None, alias="parentEmail")
    status: Optional[str] = None

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        return _normalize_gender(value)


# Placements

class PlacementCreate(RecordModel):
    student_id: str = Field(..., min_length=1, alias="studentId", description="Student.id of the placed student")
    school_id: str = Field(..., min_length=1, alias="schoolId", description="School.id of the receiving school")
    program: str = Field(..., min_length=1)
    placement_date: date = Field(..., alias="placementDate")
    status: PlacementStatus
    notes: Optional[str] = None


class Placement(PlacementCreate):
    id: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class PlacementUpdate(PatchModel):
    student_id: Optional[str] = Field(None, alias="studentId")
    school_id: Optional[str] = Field(None, alias="schoolId")
    program: Optional[str] = None
    placement_date: Optional[date] = Field(None, alias="placementDate")
    status: Optional[PlacementStatus] = None
    notes: Optional[str] = None


# Read/seed-only collections

class School(RecordModel):
    id: str
    name: str
    type: str
    location: str
    programs: List[str] = Field(default_factory=list)


class InertRecord(RecordModel):
    """Collections the dashboard only reads; unknown fields survive a save."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None


class Teacher(InertRecord):
    name: Optional[str] = None


class AttendanceRecord(InertRecord):
    present: bool = False


class GradeRecord(InertRecord):
    pass
