import uuid
import enum
from modulehub.helpers.datetime_utils import utcnow
from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Float, Enum, ForeignKey, Text,
    UniqueConstraint, JSON, Uuid,
)
from sqlalchemy.orm import relationship
from modulehub.database import Base


# ---------------------------
# Enums
# ---------------------------
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class FileType(str, enum.Enum):
    PDF = "pdf"
    VIDEO = "video"
    DOCUMENT = "document"


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


# ---------------------------
# User Model
# ---------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    role = Column(Enum(UserRole, name="user_role_enum"), nullable=False)
    name = Column(String(255), nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_approved = Column(Boolean, default=False)

    # Student-specific
    level = Column(String(10), nullable=True)
    academic_year = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    last_login = Column(DateTime, nullable=True)


# ---------------------------
# Module Model
# ---------------------------
class Module(Base):
    __tablename__ = "modules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    academic_year = Column(String(20), nullable=False)
    level = Column(String(10), nullable=False)
    semester = Column(Integer, nullable=False)

    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    teacher = relationship("User", foreign_keys=[teacher_id])
    creator = relationship("User", foreign_keys=[created_by])

    chapters = relationship(
        "Chapter",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="Chapter.position",
    )
    syllabus = relationship(
        "Syllabus",
        back_populates="module",
        cascade="all, delete-orphan",
        uselist=False,
    )
    references = relationship(
        "Reference",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="Reference.position",
    )
    lessons = relationship(
        "Lesson",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="Lesson.created_at",
    )
    # every attachment of the module, whatever its container
    files = relationship("ModuleFile", viewonly=True)


class Chapter(Base):
    __tablename__ = "chapters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    title = Column(String(100), nullable=False)
    content = Column(Text, default="")

    module = relationship("Module", back_populates="chapters")
    files = relationship(
        "ModuleFile",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="ModuleFile.uploaded_at",
    )


class Syllabus(Base):
    __tablename__ = "syllabi"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False, unique=True)

    content = Column(Text, default="")

    module = relationship("Module", back_populates="syllabus")
    files = relationship(
        "ModuleFile",
        back_populates="syllabus",
        cascade="all, delete-orphan",
        order_by="ModuleFile.uploaded_at",
    )


class Reference(Base):
    __tablename__ = "module_references"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    title = Column(String(100), nullable=False)
    description = Column(Text, default="")

    module = relationship("Module", back_populates="references")
    files = relationship(
        "ModuleFile",
        back_populates="reference",
        cascade="all, delete-orphan",
        order_by="ModuleFile.uploaded_at",
    )


# ---------------------------
# Lesson Model
# ---------------------------
class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False, index=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, default="")

    created_at = Column(DateTime, default=utcnow)

    module = relationship("Module", back_populates="lessons")
    chapters = relationship(
        "LessonChapter",
        back_populates="lesson",
        cascade="all, delete-orphan",
        order_by="LessonChapter.position",
    )


class LessonChapter(Base):
    __tablename__ = "lesson_chapters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lesson_id = Column(Uuid(as_uuid=True), ForeignKey("lessons.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    title = Column(String(100), nullable=False)
    content = Column(Text, default="")

    lesson = relationship("Lesson", back_populates="chapters")
    files = relationship(
        "ModuleFile",
        back_populates="lesson_chapter",
        cascade="all, delete-orphan",
        order_by="ModuleFile.uploaded_at",
    )


# ---------------------------
# Attachment Model
# ---------------------------
class ModuleFile(Base):
    __tablename__ = "module_files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False, index=True)

    # exactly one container is set
    chapter_id = Column(Uuid(as_uuid=True), ForeignKey("chapters.id"), nullable=True)
    syllabus_id = Column(Uuid(as_uuid=True), ForeignKey("syllabi.id"), nullable=True)
    reference_id = Column(Uuid(as_uuid=True), ForeignKey("module_references.id"), nullable=True)
    lesson_chapter_id = Column(Uuid(as_uuid=True), ForeignKey("lesson_chapters.id"), nullable=True)

    path = Column(Text, nullable=False)
    file_type = Column(String(20), nullable=False, default=FileType.PDF.value)
    original_name = Column(String(255), default="")
    size = Column(Integer, default=0)
    uploaded_at = Column(DateTime, default=utcnow, index=True)
    temporary = Column(Boolean, default=True, index=True)

    chapter = relationship("Chapter", back_populates="files")
    syllabus = relationship("Syllabus", back_populates="files")
    reference = relationship("Reference", back_populates="files")
    lesson_chapter = relationship("LessonChapter", back_populates="files")


# ---------------------------
# Enrollment Model
# ---------------------------
class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False)
    enrolled_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "module_id", name="unique_enrollment"),
    )


# ---------------------------
# Quiz Model
# ---------------------------
class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id = Column(Uuid(as_uuid=True), ForeignKey("modules.id"), nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    is_published = Column(Boolean, default=False)
    due_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    module = relationship("Module")
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.position",
    )
    submissions = relationship("QuizSubmission", back_populates="quiz", cascade="all, delete-orphan")


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False, default=QuestionType.MULTIPLE_CHOICE.value)

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuizOption.position",
    )


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_questions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False)

    question = relationship("QuizQuestion", back_populates="options")


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    score = Column(Float, default=0)
    max_score = Column(Integer, nullable=False)
    is_graded = Column(Boolean, default=False)
    teacher_feedback = Column(Text, nullable=True)

    submitted_at = Column(DateTime, default=utcnow)
    graded_at = Column(DateTime, nullable=True)

    quiz = relationship("Quiz", back_populates="submissions")
    student = relationship("User")
    answers = relationship(
        "QuizAnswer",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="QuizAnswer.position",
    )


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_submissions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    # not a foreign key: answers may outlive an edited question
    question_id = Column(Uuid(as_uuid=True), nullable=False)
    selected_option_ids = Column(JSON, default=list)
    text_answer = Column(Text, nullable=True)

    submission = relationship("QuizSubmission", back_populates="answers")
