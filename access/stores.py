"""
SQLAlchemy implementations of the access-control ports.
"""
import logging
from typing import Dict, List, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from database import (
    Attendance,
    Document,
    Grade,
    Homework,
    ParentStudent,
    Schedule,
    School,
    SchoolClass,
    StudentClass,
    Subject,
    SystemLog,
    TeacherSubject,
    User,
    UserRole,
    UserRoleGrant,
)
from .catalog import RESOURCE_FIELDS
from .models import AuditEntry, ResourceType, RoleGrant, UserRecord, parse_role

logger = logging.getLogger(__name__)


MODEL_FOR_RESOURCE = {
    ResourceType.SCHOOLS: School,
    ResourceType.CLASSES: SchoolClass,
    ResourceType.SUBJECTS: Subject,
    ResourceType.SCHEDULES: Schedule,
    ResourceType.HOMEWORK: Homework,
    ResourceType.GRADES: Grade,
    ResourceType.ATTENDANCE: Attendance,
    ResourceType.DOCUMENTS: Document,
    ResourceType.USERS: User,
    ResourceType.ROLE_GRANTS: UserRoleGrant,
}


def _to_grant(row: UserRoleGrant) -> Optional[RoleGrant]:
    role = parse_role(row.role)
    if role is None:
        logger.warning("Ignoring grant #%s with unknown role '%s'", row.id, row.role)
        return None
    return RoleGrant(
        id=row.id,
        user_id=row.user_id,
        role=role,
        school_id=row.school_id,
        class_id=row.class_id,
    )


def _ids(rows) -> List[int]:
    return [row[0] for row in rows]


class SqlGrantStore:
    """Grant store backed by the users and user_roles tables."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            return None
        return UserRecord(
            user_id=user.id,
            role=user.role,
            school_id=user.school_id,
            active_role=user.active_role,
            active_school_id=user.active_school_id,
            active_class_id=user.active_class_id,
        )

    def get_grants(self, user_id: int) -> List[RoleGrant]:
        rows = (
            self.db.query(UserRoleGrant)
            .filter(UserRoleGrant.user_id == user_id)
            .order_by(UserRoleGrant.id)
            .all()
        )
        return [grant for grant in map(_to_grant, rows) if grant is not None]

    def get_grant(self, grant_id: int) -> Optional[RoleGrant]:
        row = self.db.query(UserRoleGrant).filter(UserRoleGrant.id == grant_id).first()
        return _to_grant(row) if row else None

    def add_grant(self, user_id: int, role: UserRole, school_id=None, class_id=None) -> RoleGrant:
        row = UserRoleGrant(user_id=user_id, role=role.value, school_id=school_id, class_id=class_id)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _to_grant(row)

    def remove_grant(self, grant_id: int) -> None:
        self.db.query(UserRoleGrant).filter(UserRoleGrant.id == grant_id).delete()
        self.db.commit()

    def update_active_role(self, user_id, role, school_id, class_id, audit: AuditEntry) -> None:
        """Persist the active role and its audit row in one transaction."""
        try:
            user = self.db.query(User).filter(User.id == user_id).first()
            if user is None:
                raise LookupError(f"User {user_id} vanished during active role update")
            user.active_role = role.value
            user.active_school_id = school_id
            user.active_class_id = class_id
            self.db.add(SystemLog(user_id=audit.user_id, action=audit.action, details=audit.details))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class SqlDerivationSource:
    """Derived scope sets computed from link tables."""

    def __init__(self, db: Session):
        self.db = db

    def classes_taught_by(self, teacher_id: int) -> List[int]:
        rows = self.db.query(Schedule.class_id).filter(Schedule.teacher_id == teacher_id).distinct()
        return _ids(rows)

    def subjects_taught_by(self, teacher_id: int) -> List[int]:
        rows = (
            self.db.query(TeacherSubject.subject_id)
            .filter(TeacherSubject.teacher_id == teacher_id)
            .distinct()
        )
        return _ids(rows)

    def classes_of_student(self, student_id: int) -> List[int]:
        rows = (
            self.db.query(StudentClass.class_id)
            .filter(StudentClass.student_id == student_id)
            .distinct()
        )
        return _ids(rows)

    def children_of_parent(self, parent_id: int) -> List[int]:
        rows = (
            self.db.query(ParentStudent.student_id)
            .filter(ParentStudent.parent_id == parent_id)
            .distinct()
        )
        return _ids(rows)

    def classes_in_school(self, school_id: int) -> List[int]:
        return _ids(self.db.query(SchoolClass.id).filter(SchoolClass.school_id == school_id))

    def subjects_in_school(self, school_id: int) -> List[int]:
        return _ids(self.db.query(Subject.id).filter(Subject.school_id == school_id))

    def users_in_school(self, school_id: int) -> List[int]:
        return _ids(self.db.query(User.id).filter(User.school_id == school_id))

    def documents_in_school(self, school_id: int) -> List[int]:
        class_ids = self.db.query(SchoolClass.id).filter(SchoolClass.school_id == school_id)
        subject_ids = self.db.query(Subject.id).filter(Subject.school_id == school_id)
        rows = self.db.query(Document.id).filter(
            or_(
                Document.school_id == school_id,
                Document.class_id.in_(class_ids.scalar_subquery()),
                Document.subject_id.in_(subject_ids.scalar_subquery()),
            )
        )
        return _ids(rows)

    def students_in_class(self, class_id: int) -> List[int]:
        rows = (
            self.db.query(StudentClass.student_id)
            .filter(StudentClass.class_id == class_id)
            .distinct()
        )
        return _ids(rows)

    def school_of_class(self, class_id: int) -> Optional[int]:
        row = self.db.query(SchoolClass.school_id).filter(SchoolClass.id == class_id).first()
        return row[0] if row else None

    def resource_attributes(self, resource_type: ResourceType, resource_id: int) -> Optional[Mapping[str, Optional[int]]]:
        model = MODEL_FOR_RESOURCE[resource_type]
        record = self.db.query(model).filter(model.id == resource_id).first()
        if record is None:
            return None
        attributes: Dict[str, Optional[int]] = {
            name: getattr(record, name) for name in RESOURCE_FIELDS[resource_type]
        }
        return attributes


class SqlAuditSink:
    """
    Audit sink writing to system_logs.
    Failures are logged and swallowed so auditing never blocks a decision.
    """

    def __init__(self, db: Session, enabled: Optional[bool] = None):
        self.db = db
        self.enabled = settings.audit_enabled if enabled is None else enabled

    def record(self, user_id: int, action: str, details: str = "") -> None:
        if not self.enabled:
            return
        try:
            self.db.add(SystemLog(user_id=user_id, action=action, details=details))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Audit record '%s' for user %s failed: %s", action, user_id, exc)
