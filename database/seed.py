"""
Seed data script for the School Access system.
Creates two schools with classes, subjects and users holding several roles.
"""
from datetime import date, timedelta
import logging
import random

from sqlalchemy.orm import Session

from database import (
    get_db_context, init_db,
    User, UserRole, School, SchoolClass, Subject, TeacherSubject, StudentClass,
    ParentStudent, Schedule, Homework, Grade, Attendance, Document,
    UserRoleGrant, SystemLog,
)

logger = logging.getLogger(__name__)


def _user(username, first_name, last_name, role, school=None):
    return User(
        username=username,
        first_name=first_name,
        last_name=last_name,
        email=f"{username}@example.org",
        role=role.value,
        school_id=school.id if school else None,
    )


def populate(db: Session, rng: random.Random = None) -> dict:
    """
    Insert the demo data set into an empty database.

    Returns:
        Reference ids keyed by a short name (e.g. "teacher_maria", "class_10a")
    """
    rng = rng or random.Random(42)

    # Schools
    north = School(name="Escola Norte", address="Rua do Norte 1", city="Porto")
    south = School(name="Escola Sul", address="Avenida do Sul 9", city="Faro")
    db.add_all([north, south])
    db.flush()

    # Classes
    class_10a = SchoolClass(name="10A", school_id=north.id, grade_level=10, academic_year="2025-2026")
    class_10b = SchoolClass(name="10B", school_id=north.id, grade_level=10, academic_year="2025-2026")
    class_11a = SchoolClass(name="11A", school_id=south.id, grade_level=11, academic_year="2025-2026")
    db.add_all([class_10a, class_10b, class_11a])
    db.flush()

    # Subjects
    maths = Subject(name="Matemática", school_id=north.id)
    portuguese = Subject(name="Português", school_id=north.id)
    english = Subject(name="Inglês", school_id=south.id)
    db.add_all([maths, portuguese, english])
    db.flush()

    # Users
    admin = _user("admin", "Ana", "Admin", UserRole.SUPER_ADMIN)
    north_admin = _user("rui.admin", "Rui", "Carvalho", UserRole.SCHOOL_ADMIN, north)
    south_principal = _user("helena.dir", "Helena", "Sousa", UserRole.PRINCIPAL, south)
    maria = _user("maria.silva", "Maria", "Silva", UserRole.TEACHER, north)
    joao = _user("joao.santos", "João", "Santos", UserRole.TEACHER, south)
    students = [
        _user("miguel.f", "Miguel", "Ferreira", UserRole.STUDENT, north),
        _user("ana.c", "Ana", "Costa", UserRole.STUDENT, north),
        _user("pedro.a", "Pedro", "Almeida", UserRole.STUDENT, north),
        _user("beatriz.m", "Beatriz", "Martins", UserRole.STUDENT, south),
    ]
    parent = _user("carla.f", "Carla", "Ferreira", UserRole.PARENT, north)
    db.add_all([admin, north_admin, south_principal, maria, joao, parent] + students)
    db.flush()

    miguel, ana, pedro, beatriz = students

    # Extra roles: Maria is also class teacher of 10A, Helena also teaches in the north
    db.add_all([
        UserRoleGrant(user_id=maria.id, role=UserRole.CLASS_TEACHER.value, school_id=north.id, class_id=class_10a.id),
        UserRoleGrant(user_id=south_principal.id, role=UserRole.TEACHER.value, school_id=north.id),
    ])

    # Links
    db.add_all([
        TeacherSubject(teacher_id=maria.id, subject_id=maths.id),
        TeacherSubject(teacher_id=maria.id, subject_id=portuguese.id),
        TeacherSubject(teacher_id=joao.id, subject_id=english.id),
        StudentClass(student_id=miguel.id, class_id=class_10a.id),
        StudentClass(student_id=ana.id, class_id=class_10a.id),
        StudentClass(student_id=pedro.id, class_id=class_10b.id),
        StudentClass(student_id=beatriz.id, class_id=class_11a.id),
        ParentStudent(parent_id=parent.id, student_id=miguel.id),
        ParentStudent(parent_id=parent.id, student_id=pedro.id),
    ])

    # Schedules (a teacher's classes are derived from these)
    db.add_all([
        Schedule(class_id=class_10a.id, subject_id=maths.id, teacher_id=maria.id, day_of_week=1, room="A1"),
        Schedule(class_id=class_10b.id, subject_id=portuguese.id, teacher_id=maria.id, day_of_week=2, room="A2"),
        Schedule(class_id=class_11a.id, subject_id=english.id, teacher_id=joao.id, day_of_week=3, room="S1"),
    ])

    # Homework
    due = date.today() + timedelta(days=7)
    db.add_all([
        Homework(title="Equações", subject_id=maths.id, class_id=class_10a.id, teacher_id=maria.id, due_date=due),
        Homework(title="Leitura", subject_id=portuguese.id, class_id=class_10b.id, teacher_id=maria.id, due_date=due),
        Homework(title="Essay", subject_id=english.id, class_id=class_11a.id, teacher_id=joao.id, due_date=due),
    ])

    # Grades and attendance
    enrolment = [
        (miguel, class_10a, maths, maria),
        (ana, class_10a, maths, maria),
        (pedro, class_10b, portuguese, maria),
        (beatriz, class_11a, english, joao),
    ]
    grades = []
    attendance = []
    for student, school_class, subject, teacher in enrolment:
        grades.append(Grade(
            student_id=student.id,
            subject_id=subject.id,
            class_id=school_class.id,
            teacher_id=teacher.id,
            grade=rng.randint(10, 20),
            grade_type="test",
        ))
        attendance.append(Attendance(
            student_id=student.id,
            class_id=school_class.id,
            date=date.today() - timedelta(days=rng.randint(1, 30)),
            status=rng.choice(["present", "present", "late", "absent"]),
        ))
    db.add_all(grades + attendance)

    # Documents bound to a school, a class and a subject
    db.add_all([
        Document(title="Regulamento interno", file_url="/docs/regulamento.pdf", uploader_id=north_admin.id, school_id=north.id),
        Document(title="Plano de turma 11A", file_url="/docs/plano-11a.pdf", uploader_id=joao.id, class_id=class_11a.id),
        Document(title="Formulário de matemática", file_url="/docs/formulas.pdf", uploader_id=maria.id, subject_id=maths.id),
    ])
    db.flush()

    return {
        "school_north": north.id,
        "school_south": south.id,
        "class_10a": class_10a.id,
        "class_10b": class_10b.id,
        "class_11a": class_11a.id,
        "subject_maths": maths.id,
        "subject_portuguese": portuguese.id,
        "subject_english": english.id,
        "super_admin": admin.id,
        "north_admin": north_admin.id,
        "south_principal": south_principal.id,
        "teacher_maria": maria.id,
        "teacher_joao": joao.id,
        "student_miguel": miguel.id,
        "student_ana": ana.id,
        "student_pedro": pedro.id,
        "student_beatriz": beatriz.id,
        "parent_carla": parent.id,
    }


def seed_database():
    """Clear and repopulate the database with sample data."""

    with get_db_context() as db:
        # Clear existing data, children first
        for model in (
            SystemLog, UserRoleGrant, Document, Attendance, Grade, Homework, Schedule,
            ParentStudent, StudentClass, TeacherSubject, User, Subject, SchoolClass, School,
        ):
            db.query(model).delete()

        ids = populate(db)
        db.commit()

        logger.info("Database seeded successfully!")
        for name, value in ids.items():
            logger.info("  %-20s %s", name, value)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logger.info("Initializing database...")
    init_db()
    logger.info("Seeding database...")
    seed_database()
