"""
Database models for the School Access system.
Defines the SQLAlchemy models the access-control core reads from and writes to.
"""
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, ForeignKey,
    UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class UserRole(str, PyEnum):
    """User roles enum."""
    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    PRINCIPAL = "principal"
    VICE_PRINCIPAL = "vice_principal"
    TEACHER = "teacher"
    CLASS_TEACHER = "class_teacher"
    STUDENT = "student"
    PARENT = "parent"


class SerializableMixin:
    """Column-based dict conversion for API responses."""

    def to_dict(self):
        data = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            data[column.name] = value
        return data


class User(SerializableMixin, Base):
    """
    Users table - one row per human account.

    The primary role is kept as plain text rather than a database enum so a
    role that was removed from the catalog can still be read (and repaired)
    instead of breaking the row load.

    Attributes:
        id: Unique identifier
        username: Login name
        first_name, last_name: Display name parts
        role: Primary role
        school_id: Home school
        active_role: Role currently in effect, chosen by the user
        active_school_id: School bound to the active role
        active_class_id: Class bound to the active role (class teachers)
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(32), nullable=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="SET NULL"), nullable=True)
    active_role = Column(String(32), nullable=True)
    active_school_id = Column(Integer, nullable=True)
    active_class_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    # Relationships
    school = relationship("School", back_populates="users")
    role_grants = relationship(
        "UserRoleGrant",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserRoleGrant.id",
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


class School(SerializableMixin, Base):
    """Schools table - the tenant boundary."""
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    status = Column(String(32), nullable=False, default="active")

    # Relationships
    users = relationship("User", back_populates="school")
    classes = relationship("SchoolClass", back_populates="school")
    subjects = relationship("Subject", back_populates="school")

    def __repr__(self):
        return f"<School(id={self.id}, name='{self.name}')>"


class SchoolClass(SerializableMixin, Base):
    """
    Classes table.

    Attributes:
        id: Unique identifier
        name: Class name (e.g., "5A")
        school_id: Owning school
        grade_level: Year of study
        academic_year: e.g. "2025-2026"
    """
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    grade_level = Column(Integer, nullable=False, default=1)
    academic_year = Column(String(32), nullable=False, default="")

    # Relationships
    school = relationship("School", back_populates="classes")

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name='{self.name}', school_id={self.school_id})>"


class Subject(SerializableMixin, Base):
    """Subjects table, owned by a school."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    school = relationship("School", back_populates="subjects")

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"


class TeacherSubject(Base):
    """Association table linking teachers to the subjects they teach."""
    __tablename__ = "teacher_subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)


class StudentClass(Base):
    """
    Association table linking students to their classes.
    Supports students being in multiple classes.
    """
    __tablename__ = "student_classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)


class ParentStudent(Base):
    """Association table linking parents to their children."""
    __tablename__ = "parent_students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


class Schedule(SerializableMixin, Base):
    """
    Schedule entries. A teacher's classes are derived from these rows.

    Attributes:
        class_id: Class attending the lesson
        subject_id: Subject taught
        teacher_id: Teacher giving the lesson
        day_of_week: 1-7 for Monday-Sunday
    """
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False, default=1)
    start_time = Column(String(8), nullable=False, default="08:00")
    end_time = Column(String(8), nullable=False, default="08:45")
    room = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<Schedule(id={self.id}, class_id={self.class_id}, teacher_id={self.teacher_id})>"


class Homework(SerializableMixin, Base):
    """Homework assigned by a teacher to a class."""
    __tablename__ = "homework"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())


class Grade(SerializableMixin, Base):
    """Grades given to a student in a class and subject."""
    __tablename__ = "grades"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    grade = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    grade_type = Column(String(32), nullable=False, default="test")
    created_at = Column(DateTime, nullable=False, default=func.now())


class Attendance(SerializableMixin, Base):
    """Attendance rows per student, class and date."""
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, default="present")
    comment = Column(Text, nullable=True)


class Document(SerializableMixin, Base):
    """
    Documents, optionally bound to a school, a class and/or a subject.
    """
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(String(1024), nullable=False, default="")
    uploader_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=func.now())


class UserRoleGrant(SerializableMixin, Base):
    """
    Additional role grants held by a user.

    Attributes:
        user_id: Grantee
        role: Granted role
        school_id: School the grant is bound to (if any)
        class_id: Class the grant is bound to (class teachers)
    """
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role", "school_id", "class_id", name="uq_user_role_scope"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(32), nullable=False)
    school_id = Column(Integer, nullable=True)
    class_id = Column(Integer, nullable=True)

    # Relationships
    user = relationship("User", back_populates="role_grants")

    def __repr__(self):
        return (
            f"<UserRoleGrant(id={self.id}, user_id={self.user_id}, role='{self.role}', "
            f"school_id={self.school_id}, class_id={self.class_id})>"
        )


class SystemLog(SerializableMixin, Base):
    """Audit trail of security-relevant actions."""
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    action = Column(String(64), nullable=False)
    details = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    def __repr__(self):
        return f"<SystemLog(id={self.id}, user_id={self.user_id}, action='{self.action}')>"
