"""Domain enumerations for the rollout and query-cache layer.

Enums represent fixed sets of domain values (capability keys, rollout
phases, cacheable data classes).
"""

from enum import Enum


class CapabilityKey(str, Enum):
    """Known capability (feature flag) keys.

    Resolving a key outside this set is a contract violation; every member
    has a built-in default in app.domain.default_flags.
    """

    # Veterinary
    VETERINARY_DISEASE_MANAGEMENT = "veterinary_disease_management"
    VETERINARY_TREATMENT_TRACKING = "veterinary_treatment_tracking"
    VETERINARY_VACCINATION_SCHEDULES = "veterinary_vaccination_schedules"

    # Feed management
    FEED_INVENTORY_TRACKING = "feed_inventory_tracking"
    FEED_SCHEDULE_AUTOMATION = "feed_schedule_automation"
    NUTRITION_TEMPLATES = "nutrition_templates"

    # Staff management
    STAFF_ATTENDANCE_TRACKING = "staff_attendance_tracking"
    TASK_ASSIGNMENT_SYSTEM = "task_assignment_system"
    PERFORMANCE_REVIEWS = "performance_reviews"

    # IoT integration
    IOT_DEVICE_MANAGEMENT = "iot_device_management"
    SENSOR_DATA_INGESTION = "sensor_data_ingestion"
    REAL_TIME_MONITORING = "real_time_monitoring"

    # Milk quality
    MILK_QUALITY_TESTING = "milk_quality_testing"
    QUALITY_GRADING_SYSTEM = "quality_grading_system"
    ADULTERATION_DETECTION = "adulteration_detection"

    # Analytics & AI
    AI_PREDICTIVE_ANALYTICS = "ai_predictive_analytics"
    PRODUCTION_FORECASTING = "production_forecasting"
    HEALTH_MONITORING_AI = "health_monitoring_ai"

    # UI/UX
    DASHBOARD_REDESIGN = "dashboard_redesign"
    MOBILE_RESPONSIVE_UI = "mobile_responsive_ui"
    DARK_MODE_SUPPORT = "dark_mode_support"

    # Compliance & reporting
    COMPLIANCE_REPORTING = "compliance_reporting"
    AUDIT_LOG_ENHANCEMENT = "audit_log_enhancement"
    DATA_EXPORT_FEATURES = "data_export_features"

    @classmethod
    def values(cls) -> list[str]:
        """Return all capability keys as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [key.value for key in cls]

    @classmethod
    def parse(cls, value: "str | CapabilityKey") -> "CapabilityKey | None":
        """Return the member for value, or None if value is not a known key."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class RolloutPhase(str, Enum):
    """Rollout phase a capability belongs to (informational, used for grouping)."""

    PHASE_1 = "phase_1"
    PHASE_2 = "phase_2"
    PHASE_3 = "phase_3"


class RiskLevel(str, Enum):
    """Operational risk of enabling a capability (informational)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DataClass(str, Enum):
    """Cacheable data classes. Each maps to a TTL in the cache policy.

    Free-form data-class strings are accepted by the query cache as well;
    these are the classes with a dedicated TTL setting.
    """

    ANIMAL_LIST = "animal_list"
    MILK_STATS = "milk_stats"
    HEALTH_RECORDS = "health_records"
    DASHBOARD_DATA = "dashboard_data"
    ANALYTICS = "analytics"
    USER_PROFILE = "user_profile"
