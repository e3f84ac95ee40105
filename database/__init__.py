"""Database module."""
from .models import (
    Base,
    UserRole,
    User,
    School,
    SchoolClass,
    Subject,
    TeacherSubject,
    StudentClass,
    ParentStudent,
    Schedule,
    Homework,
    Grade,
    Attendance,
    Document,
    UserRoleGrant,
    SystemLog,
)
from .connection import engine, SessionLocal, get_db, get_db_context, init_db

__all__ = [
    "Base",
    "UserRole",
    "User",
    "School",
    "SchoolClass",
    "Subject",
    "TeacherSubject",
    "StudentClass",
    "ParentStudent",
    "Schedule",
    "Homework",
    "Grade",
    "Attendance",
    "Document",
    "UserRoleGrant",
    "SystemLog",
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "init_db",
]
