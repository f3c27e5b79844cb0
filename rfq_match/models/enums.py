"""Enums shared by the opportunity/business models and the engine outputs."""

import enum


# ── Opportunity ──────────────────────────────────────────────────────────────


class Complexity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ── Business ─────────────────────────────────────────────────────────────────


class BusinessStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Availability(str, enum.Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    UNAVAILABLE = "unavailable"


# ── Scoring ──────────────────────────────────────────────────────────────────


class ScoreDimension(str, enum.Enum):
    """Scoring dimensions in their canonical iteration order."""

    TECHNICAL = "technical"
    FINANCIAL = "financial"
    EXPERIENCE = "experience"
    CAPACITY = "capacity"
    LOCATION = "location"
    CULTURAL = "cultural"


class PartnershipNeed(str, enum.Enum):
    """Capability a primary bidder lacks and a partner may supply."""

    TECHNICAL_EXPERTISE = "technical_expertise"
    FINANCIAL_CAPACITY = "financial_capacity"
    CAPACITY = "capacity"
    GEOGRAPHIC_PRESENCE = "geographic_presence"
    CERTIFICATIONS = "certifications"


class PartnershipStructure(str, enum.Enum):
    PRIME_SUB_PRIMARY_AS_PRIME = "prime_sub_primary_as_prime"
    PRIME_SUB_PARTNER_AS_PRIME = "prime_sub_partner_as_prime"
    JOINT_VENTURE = "joint_venture"


# ── Notifications ────────────────────────────────────────────────────────────


class Urgency(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NotificationChannel(str, enum.Enum):
    PLATFORM = "platform"
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
