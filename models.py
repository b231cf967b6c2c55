from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text

from db import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True)
    name = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False, default="")
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    passwordHash = Column(Text, nullable=False, default="")
    # hr_admin | manager | employee
    role = Column(String, nullable=False, index=True)
    organizationId = Column(String, ForeignKey("organizations.id"), nullable=True, index=True)
    firstName = Column(Text, nullable=False, default="")
    lastName = Column(Text, nullable=False, default="")
    languagePreference = Column(String, nullable=False, default="en")
    isActive = Column(Boolean, nullable=False, default=True)
    lastLoginAt = Column(Text, nullable=False, default="")
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String, primary_key=True)
    userId = Column(String, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    employeeCode = Column(String, nullable=False, default="")
    position = Column(Text, nullable=False, default="")
    department = Column(Text, nullable=False, default="")
    hireDate = Column(Text, nullable=False, default="")
    employmentStatus = Column(String, nullable=False, default="pending", index=True)
    createdAt = Column(Text, nullable=False, default="")
    createdBy = Column(String, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class OnboardingSession(Base):
    __tablename__ = "onboarding_sessions"
    __table_args__ = (
        Index("ix_onboarding_sessions_status_expires", "status", "expiresAt"),
        Index("ix_onboarding_sessions_employee_status", "employeeId", "status"),
    )

    id = Column(String, primary_key=True)
    employeeId = Column(String, ForeignKey("employees.id"), nullable=True, index=True)
    token = Column(String(12), nullable=False, unique=True, index=True)

    # Walk-in candidates carry their identity inline until an employee record exists.
    firstName = Column(Text, nullable=True)
    lastName = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    jobTitle = Column(Text, nullable=True)
    organizationId = Column(String, nullable=True, index=True)
    organizationName = Column(Text, nullable=True)

    languagePreference = Column(String, nullable=False, default="en")
    currentStep = Column(String, nullable=True)
    formDataJson = Column(Text, nullable=False, default="{}")
    # in_progress | completed | cancelled | expired
    status = Column(String, nullable=False, default="in_progress", index=True)

    expiresAt = Column(Text, nullable=False, index=True)
    completedAt = Column(Text, nullable=True)
    createdAt = Column(Text, nullable=False, default="", index=True)
    createdBy = Column(String, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class StaffSession(Base):
    __tablename__ = "staff_sessions"

    sessionId = Column(String, primary_key=True)
    tokenHash = Column(String, nullable=False, unique=True, index=True)
    tokenPrefix = Column(String, nullable=False, default="", index=True)
    userId = Column(String, nullable=False, default="", index=True)
    email = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default="")
    organizationId = Column(String, nullable=False, default="")
    issuedAt = Column(Text, nullable=False, default="")
    expiresAt = Column(Text, nullable=False, default="")
    lastSeenAt = Column(Text, nullable=False, default="")
    revokedAt = Column(Text, nullable=False, default="")
    revokedBy = Column(String, nullable=False, default="")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    senderId = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    receiverId = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    subject = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    isRead = Column(Boolean, nullable=False, default=False, index=True)
    createdAt = Column(Text, nullable=False, default="", index=True)
    readAt = Column(Text, nullable=True)


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String, primary_key=True)
    organizationId = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    authorId = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    priority = Column(String, nullable=False, default="normal")
    isActive = Column(Boolean, nullable=False, default=True, index=True)
    expiresAt = Column(Text, nullable=False, default="")
    createdAt = Column(Text, nullable=False, default="", index=True)
    updatedAt = Column(Text, nullable=False, default="")


class AuditLog(Base):
    __tablename__ = "audit_log"

    logId = Column(String, primary_key=True)
    entityType = Column(String, nullable=False, default="", index=True)
    entityId = Column(String, nullable=False, default="", index=True)
    action = Column(String, nullable=False, default="", index=True)
    fromState = Column(String, nullable=False, default="")
    toState = Column(String, nullable=False, default="")
    stageTag = Column(String, nullable=False, default="", index=True)
    remark = Column(Text, nullable=False, default="")
    actorUserId = Column(String, nullable=False, default="", index=True)
    actorRole = Column(String, nullable=False, default="", index=True)
    actorEmail = Column(Text, nullable=False, default="")
    at = Column(Text, nullable=False, default="", index=True)
    correlationId = Column(String, nullable=False, default="", index=True)
    metaJson = Column(Text, nullable=False, default="")
