"""
Assessment models for the Assessment Service.
Organizations, candidate and special-user accounts, tests, bookings and results.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Enum, Numeric, Float,
    ForeignKey, Index, CheckConstraint, Text
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from datetime import datetime, timezone

Base = declarative_base()


class CallerRole(str, PyEnum):
    """Roles carried by an authenticated caller."""
    CANDIDATE = "Candidate"
    ORGANIZATION = "Organization"
    SPECIAL_USER = "SpecialUser"
    ADMIN = "Admin"


class EducationLevel(PyEnum):
    """Highest completed education."""
    HIGH_SCHOOL = "HighSchool"
    SENIOR_SECONDARY = "SeniorSecondary"
    GRADUATE = "Graduate"
    POST_GRADUATE = "PostGraduate"
    DOCTORATE = "Doctorate"


class EmploymentStatus(PyEnum):
    """Current employment status."""
    STUDENT = "Student"
    EMPLOYED = "Employed"
    SELF_EMPLOYED = "SelfEmployed"
    UNEMPLOYED = "Unemployed"
    FRESHER = "Fresher"


class BookingStatus:
    """Known TestBooking status values. The column itself is free text."""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"


class Organization(Base):
    """
    Tenant organization, keyed by its external SAP id.
    Holds at most one organization token used for user registration.
    """

    __tablename__ = "organizations"

    sap_id = Column(String(50), primary_key=True)

    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    contact_person = Column(String(200), nullable=False)
    phone_number = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)
    website = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)

    # Authentication fields
    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), default=CallerRole.ORGANIZATION.value, nullable=False)
    is_super_organization = Column(Boolean, default=False, nullable=False)

    # Registration token
    organization_token = Column(String(100), unique=True, nullable=True)
    token_generated_at = Column(DateTime(timezone=True), nullable=True)
    is_token_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    tests = relationship(
        "Test",
        primaryjoin="Organization.sap_id == foreign(Test.created_by_sap_id)",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Organization(sap_id='{self.sap_id}', name='{self.name}')>"

    def to_dict(self) -> dict:
        """Convert organization to its public projection."""
        return {
            "sapId": self.sap_id,
            "name": self.name,
            "contactPerson": self.contact_person,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "address": self.address,
            "website": self.website,
            "description": self.description,
            "logoUrl": self.logo_url,
            "isTokenActive": self.is_token_active,
            "tokenGeneratedAt": self.token_generated_at.isoformat() if self.token_generated_at else None,
        }


class User(Base):
    """
    Candidate account.

    ``id`` is the numeric account id carried in session claims; ``sap_id`` is
    the external identifier that bookings and results refer to.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    sap_id = Column(String(50), unique=True, nullable=False, index=True)

    username = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False, default="")
    role = Column(String(50), default=CallerRole.CANDIDATE.value, nullable=False)

    photo_url = Column(String(500), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    mobile_number = Column(String(30), nullable=True)
    key_skills = Column(Text, nullable=True)
    employment = Column(Enum(EmploymentStatus), nullable=True)
    education = Column(Enum(EducationLevel), nullable=True)
    category = Column(String(100), nullable=True)

    organization_sap_id = Column(String(50), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, sap_id='{self.sap_id}')>"

    def to_dict(self) -> dict:
        """Convert candidate to its profile projection."""
        return {
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "photoUrl": self.photo_url,
            "role": self.role,
            "keySkills": self.key_skills,
            "employment": self.employment.value if self.employment else None,
            "education": self.education.value if self.education else None,
            "category": self.category,
        }


class SpecialUser(Base):
    """
    Alternate-role account created by an organization.
    """

    __tablename__ = "specialusers"

    users_sap_id = Column(String(50), primary_key=True)

    email = Column(String(255), nullable=False, index=True)
    username = Column(String(100), nullable=False)
    full_name = Column(String(200), nullable=False)
    password_hash = Column(String(255), nullable=False, default="")
    organization_sap_id = Column(String(50), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    mobile_number = Column(String(30), nullable=True)
    education = Column(Enum(EducationLevel), nullable=True)
    employment = Column(Enum(EmploymentStatus), nullable=True)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)

    def __repr__(self):
        return f"<SpecialUser(users_sap_id='{self.users_sap_id}')>"

    def to_dict(self) -> dict:
        """Convert special user to its profile projection."""
        return {
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "role": CallerRole.SPECIAL_USER.value,
            "category": self.category,
            "education": self.education.value if self.education else None,
            "employment": self.employment.value if self.employment else None,
            "mobileNumber": self.mobile_number,
            "description": self.description,
            "isActive": self.is_active,
        }


class Test(Base):
    """
    A schedulable assessment owned by an organization.
    ``current_user_count`` never exceeds ``max_users_per_slot``.
    """

    __tablename__ = "tests"
    __test__ = False  # not a pytest test class

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    domain = Column(String(100), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)

    created_by_sap_id = Column(String(50), nullable=True, index=True)

    price = Column(Numeric(10, 2), nullable=False, default=1)
    passing_score = Column(Integer, nullable=False, default=60)
    max_attempts = Column(Integer, nullable=False, default=1)

    scheduled_start_time = Column(DateTime(timezone=True), nullable=True)
    scheduled_end_time = Column(DateTime(timezone=True), nullable=True)

    # Occupancy
    current_user_count = Column(Integer, nullable=False, default=0)
    max_users_per_slot = Column(Integer, nullable=False, default=200)

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    bookings = relationship("TestBooking", back_populates="test")
    results = relationship("TestResult", back_populates="test")

    __table_args__ = (
        CheckConstraint('current_user_count >= 0', name='check_current_user_count_positive'),
        CheckConstraint('current_user_count <= max_users_per_slot', name='check_current_user_count_capacity'),
        CheckConstraint('duration_minutes BETWEEN 1 AND 1440', name='check_duration_range'),
    )

    def __repr__(self):
        return f"<Test(id={self.id}, title='{self.title}', occupancy={self.current_user_count}/{self.max_users_per_slot})>"

    @property
    def is_full(self) -> bool:
        """Check if no seat is left."""
        return self.current_user_count >= self.max_users_per_slot


class TestBooking(Base):
    """
    One candidate's reservation of a slot on a test.

    Keyed to the candidate by SAP id string, with no uniqueness over
    (test, candidate): repeated bookings are allowed.
    """

    __tablename__ = "testbookings"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id"), nullable=False, index=True)
    user_sap_id = Column(String(50), nullable=False, index=True)

    booked_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    booking_date = Column(Date, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    slot_number = Column(Integer, nullable=True)

    status = Column(String(30), nullable=False, default=BookingStatus.PENDING)
    transaction_id = Column(String(100), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    status_reason = Column(Text, nullable=True)

    test = relationship("Test", back_populates="bookings")

    __table_args__ = (
        Index('idx_testbooking_test_user', 'test_id', 'user_sap_id'),
    )

    def __repr__(self):
        return f"<TestBooking(id={self.id}, test_id={self.test_id}, user_sap_id='{self.user_sap_id}', status='{self.status}')>"

    def to_dict(self) -> dict:
        """Convert booking to dictionary representation."""
        return {
            "id": self.id,
            "test_id": self.test_id,
            "user_sap_id": self.user_sap_id,
            "booked_at": self.booked_at.isoformat() if self.booked_at else None,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "slot_number": self.slot_number,
            "status": self.status,
        }

    @property
    def is_failed(self) -> bool:
        return self.status == BookingStatus.FAILED

    def can_start(self) -> bool:
        """A test can be started once the booking is confirmed."""
        return self.status in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


class TestResult(Base):
    """
    Submitted attempt of a test by a candidate or special user.
    """

    __tablename__ = "testresult"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id"), nullable=False, index=True)
    username = Column(String(100), nullable=False)
    user_sap_id = Column(String(50), nullable=False, index=True)

    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    attempt_number = Column(Integer, nullable=False, default=1)

    test = relationship("Test", back_populates="results")
    user = relationship(
        "User",
        primaryjoin="foreign(TestResult.user_sap_id) == User.sap_id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<TestResult(id={self.id}, test_id={self.test_id}, user_sap_id='{self.user_sap_id}')>"

    def score_percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return (self.correct_answers * 100.0) / self.total_questions

    def score_rating(self) -> str:
        """Performance band used on special-user reports."""
        percentage = self.score_percentage()
        if percentage >= 80:
            return "Best Performer"
        if percentage >= 70:
            return "Good Performer"
        if percentage >= 60:
            return "Average Performer"
        return "Below Average"

    def is_eligible_for_certificate(self) -> bool:
        return bool(self.total_questions) and self.score_percentage() >= 60
