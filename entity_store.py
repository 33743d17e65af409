import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ValidationError

from models import (
    AttendanceRecord, GradeRecord, Placement, PlacementCreate, PlacementUpdate,
    School, Student, StudentCreate, StudentImport, StudentUpdate, Teacher
)
from storage import SlotStorage, StorageError, StoreError

# Durable slot name -> record type
COLLECTION_SLOTS = {
    'students': Student,
    'teachers': Teacher,
    'attendance': AttendanceRecord,
    'grades': GradeRecord,
    'placements': Placement,
    'schools': School,
}
SETTING_SLOTS = ('theme', 'currentUser', 'userRole')

IMPORT_ID_PREFIX = 'SHS'


class RecordNotFoundError(StoreError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"No record with id '{record_id}' in {collection}")
        self.collection = collection
        self.record_id = record_id


class StudentImportError(StoreError):
    """Import rejected; carries one message per offending row."""

    def __init__(self, errors: List[str]):
        super().__init__(f"{len(errors)} row(s) could not be imported")
        self.errors = errors


def generate_id() -> str:
    return uuid.uuid4().hex


def describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = '.'.join(str(p) for p in item['loc']) or 'record'
        parts.append(f"{field}: {item['msg']}")
    return '; '.join(parts)


class Collection:
    """
    All records of one entity type, mirrored from a single durable slot.

    Reads never touch storage. Writes go through _persist, which saves the
    full record list before swapping it in, so memory only changes once
    the slot write has succeeded.
    """

    def __init__(self, store: 'EntityStore', slot: str, model: Type[BaseModel]):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.slot = slot
        self.model = model
        self.records = self._load()

    def _load(self) -> list:
        raw = self.store.storage.load(self.slot)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StorageError(f"Slot '{self.slot}' does not hold a list")
        try:
            return [self.model.model_validate(item) for item in raw]
        except ValidationError as e:
            self.logger.error(f"Invalid record in slot '{self.slot}': {describe_validation_error(e)}")
            raise StorageError(f"Slot '{self.slot}' holds invalid records") from e

    def _persist(self, records: list) -> None:
        self.store.storage.save(self.slot, [r.to_storage() for r in records])
        self.records = records

    def __len__(self):
        return len(self.records)

    def list(self) -> list:
        return list(self.records)

    def get(self, record_id: str):
        return next((r for r in self.records if r.id == record_id), None)

    def find(self, predicate: Callable[[Any], bool]) -> list:
        return [r for r in self.records if predicate(r)]

    def seed(self, items: Iterable[Any]) -> bool:
        """Populate an empty collection. Returns False if records already exist."""
        if self.records:
            return False
        records = [self.model.model_validate(item) for item in items]
        self._persist(records)
        self.logger.info(f"Seeded {len(records)} {self.slot}")
        return True


class MutableCollection(Collection):
    """Collection with add/update/delete (students and placements)."""

    def __init__(self, store, slot, model, create_model, update_model):
        super().__init__(store, slot, model)
        self.create_model = create_model
        self.update_model = update_model

    @staticmethod
    def _coerce(schema, data):
        if isinstance(data, schema):
            return data
        return schema.model_validate(data)

    def _build(self, fields: Dict[str, Any]):
        return self.model.model_validate({
            **fields,
            'id': self.store.new_id(),
            'created_at': self.store.timestamp(),
        })

    def add(self, data):
        """Validate, assign id and createdAt, append and persist. Returns the stored record."""
        fields = self._coerce(self.create_model, data).model_dump()
        record = self._build(fields)
        self._persist(self.records + [record])
        self.logger.info(f"Added {self.slot} record {record.id}")
        return record

    def add_many(self, items: Iterable[Any], schema: Optional[Type[BaseModel]] = None) -> list:
        """Add several records with a single slot write."""
        schema = schema or self.create_model
        validated = [self._coerce(schema, item) for item in items]
        new_records = [self._build(v.model_dump()) for v in validated]
        self._persist(self.records + new_records)
        self.logger.info(f"Added {len(new_records)} {self.slot} records")
        return new_records

    def update(self, record_id: str, patch):
        changes = self._coerce(self.update_model, patch).changes()
        for index, record in enumerate(self.records):
            if record.id == record_id:
                break
        else:
            raise RecordNotFoundError(self.slot, record_id)

        updated = self.model.model_validate({**record.model_dump(), **changes})
        records = list(self.records)
        records[index] = updated
        self._persist(records)
        self.logger.info(f"Updated {self.slot} record {record_id}: {sorted(changes)}")
        return updated

    def delete(self, record_id: str) -> bool:
        """Remove a record. Missing ids are not an error; returns whether anything was removed."""
        records = [r for r in self.records if r.id != record_id]
        removed = len(records) != len(self.records)
        self._persist(records)
        if removed:
            self.logger.info(f"Deleted {self.slot} record {record_id}")
        return removed


class EntityStore:
    """
    Owns every collection plus the scalar preference slots.

    Collections are loaded once here; each mutation rewrites only the
    collection it touched. Cross-collection consistency (e.g. placements of
    a deleted student) is left to the caller.
    """

    def __init__(self, storage: SlotStorage):
        self.logger = logging.getLogger(__name__)
        self.storage = storage
        self._last_timestamp: Optional[datetime] = None

        self.students = MutableCollection(self, 'students', Student, StudentCreate, StudentUpdate)
        self.placements = MutableCollection(self, 'placements', Placement, PlacementCreate, PlacementUpdate)
        self.schools = Collection(self, 'schools', School)
        self.teachers = Collection(self, 'teachers', Teacher)
        self.attendance = Collection(self, 'attendance', AttendanceRecord)
        self.grades = Collection(self, 'grades', GradeRecord)

        stamps = [r.created_at for c in (self.students, self.placements) for r in c.records
                  if r.created_at is not None and r.created_at.tzinfo is not None]
        if stamps:
            self._last_timestamp = max(stamps)

    def collections(self) -> Dict[str, Collection]:
        return {slot: getattr(self, slot) for slot in COLLECTION_SLOTS}

    def new_id(self) -> str:
        existing = {r.id for c in self.collections().values() for r in c.records}
        record_id = generate_id()
        while record_id in existing:
            record_id = generate_id()
        return record_id

    def timestamp(self) -> datetime:
        """Creation time, never earlier than the previous one handed out."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    # Scalar slots

    def _check_setting(self, name):
        if name not in SETTING_SLOTS:
            raise KeyError(f"Unknown setting slot: {name}")

    def get_setting(self, name: str, default=None):
        self._check_setting(name)
        value = self.storage.load(name)
        return default if value is None else value

    def set_setting(self, name: str, value) -> None:
        self._check_setting(name)
        self.storage.save(name, value)

    def clear_setting(self, name: str) -> None:
        self._check_setting(name)
        self.storage.remove(name)

    # Import

    def _fallback_student_id(self, taken: set) -> str:
        student_id = f"{IMPORT_ID_PREFIX}{generate_id()[:6].upper()}"
        while student_id in taken:
            student_id = f"{IMPORT_ID_PREFIX}{generate_id()[:6].upper()}"
        return student_id

    def import_students(self, rows: List[Dict[str, Any]]) -> List[Student]:
        """
        Append spreadsheet rows as new students in one write.

        Rows without a student_id get a generated SHS-prefixed one. Every
        row is validated first; any invalid row rejects the whole import
        and the store is left untouched.
        """
        taken = {s.student_id for s in self.students.records}
        prepared = []
        errors = []
        for number, row in enumerate(rows, start=1):
            data = dict(row)
            if not data.get('student_id'):
                data['student_id'] = self._fallback_student_id(taken)
            taken.add(data['student_id'])
            try:
                prepared.append(StudentImport.model_validate(data))
            except ValidationError as e:
                errors.append(f"Row {number}: {describe_validation_error(e)}")

        if errors:
            self.logger.error(f"Student import rejected: {errors}")
            raise StudentImportError(errors)

        return self.students.add_many(prepared, schema=StudentImport)
