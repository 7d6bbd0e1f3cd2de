"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class RuleType(str, Enum):
    GEO_FIRST = "GEO_FIRST"
    CONTINUITY = "CONTINUITY"
    SMART_BALANCE = "SMART_BALANCE"
    TIER_BALANCE = "TIER_BALANCE"
    CRE_BALANCE = "CRE_BALANCE"


class AccountScope(str, Enum):
    ALL = "all"
    CUSTOMERS = "customers"
    PROSPECTS = "prospects"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class WarningType(str, Enum):
    HIERARCHY_SPLIT = "HIERARCHY_SPLIT"
    LOCK_OVERRIDE = "LOCK_OVERRIDE"
    CRE_RISK = "CRE_RISK"
    STRATEGIC_OVERFLOW = "STRATEGIC_OVERFLOW"
    CROSS_REGION = "CROSS_REGION"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    CONTINUITY_BROKEN = "CONTINUITY_BROKEN"
    TIER_CONCENTRATION = "TIER_CONCENTRATION"
    CHANGING_CUSTOMER_OWNER = "CHANGING_CUSTOMER_OWNER"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CreRiskLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RuleApplied(str, Enum):
    """Which waterfall step (or operator action) produced a proposal."""

    STRATEGIC_CONTINUITY = "STRATEGIC_CONTINUITY"
    STRATEGIC_DISTRIBUTION = "STRATEGIC_DISTRIBUTION"
    CONTINUITY_GEO = "P1_CONTINUITY_GEO"
    GEOGRAPHY = "P2_GEOGRAPHY"
    CONTINUITY_ANY_GEO = "P3_CONTINUITY_ANY_GEO"
    BEST_AVAILABLE = "P4_BEST_AVAILABLE"
    UNASSIGNED = "UNASSIGNED"
    LOCKED = "LOCKED"
    MANUAL_REASSIGNMENT = "MANUAL_REASSIGNMENT"


class HierarchyRole(str, Enum):
    STANDALONE = "standalone"
    PARENT = "parent"
    CHILD = "child"


class CascadeState(str, Enum):
    IDLE = "Idle"
    EVALUATING = "Evaluating"
    CONFIRMED = "Confirmed"
    SPLIT_WARNED = "SplitWarned"
    LOCK_OVERRIDE_WARNED = "LockOverrideWarned"
    APPLIED = "Applied"
    CANCELLED = "Cancelled"


class AuditAction(str, Enum):
    MANUAL_REASSIGNMENT = "manual_reassignment"
    HIERARCHY_REASSIGNMENT = "hierarchy_reassignment"
    HIERARCHY_SPLIT = "hierarchy_split"
    LOCK = "lock"
    UNLOCK = "unlock"
