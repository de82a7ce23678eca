"""Built-in capability defaults and phase rollout order.

Every CapabilityKey has a hard-coded default so the rollout engine can
degrade safely when the configuration store is unreachable or has no record.
"""

from app.domain.entities.capability_flag import CapabilityFlag
from app.domain.enums import CapabilityKey, RiskLevel, RolloutPhase

K = CapabilityKey
P1, P2, P3 = RolloutPhase.PHASE_1, RolloutPhase.PHASE_2, RolloutPhase.PHASE_3
LOW, MEDIUM, HIGH = RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH


def _default(
    key: CapabilityKey,
    description: str,
    rollout_percentage: int,
    phase: RolloutPhase,
    risk_level: RiskLevel,
    dependencies: tuple[str, ...] = (),
) -> CapabilityFlag:
    return CapabilityFlag(
        key=key.value,
        enabled_default=False,
        rollout_percentage=rollout_percentage,
        description=description,
        phase=phase,
        dependencies=dependencies,
        risk_level=risk_level,
    )


_DEFAULTS: tuple[CapabilityFlag, ...] = (
    # Phase 1: foundation, gradual rollout
    _default(K.VETERINARY_DISEASE_MANAGEMENT, "Enable veterinary disease management system",
             10, P1, LOW, ("database_migration_veterinary",)),
    _default(K.VETERINARY_TREATMENT_TRACKING, "Enable treatment record tracking and management",
             10, P1, MEDIUM, (K.VETERINARY_DISEASE_MANAGEMENT.value,)),
    _default(K.VETERINARY_VACCINATION_SCHEDULES, "Enable vaccination schedule management",
             10, P1, LOW, (K.VETERINARY_DISEASE_MANAGEMENT.value,)),
    _default(K.FEED_INVENTORY_TRACKING, "Enable feed inventory management and tracking",
             15, P1, LOW, ("database_migration_feed",)),
    _default(K.FEED_SCHEDULE_AUTOMATION, "Enable automated feeding schedule management",
             10, P1, MEDIUM, (K.FEED_INVENTORY_TRACKING.value,)),
    _default(K.NUTRITION_TEMPLATES, "Enable nutrition template management",
             10, P1, LOW, (K.FEED_INVENTORY_TRACKING.value,)),
    _default(K.STAFF_ATTENDANCE_TRACKING, "Enable staff attendance tracking system",
             20, P1, LOW, ("database_migration_staff",)),
    _default(K.TASK_ASSIGNMENT_SYSTEM, "Enable task assignment and tracking system",
             15, P1, MEDIUM, (K.STAFF_ATTENDANCE_TRACKING.value,)),
    _default(K.MILK_QUALITY_TESTING, "Enable milk quality testing management",
             15, P1, MEDIUM, ("database_migration_milk_quality",)),
    _default(K.QUALITY_GRADING_SYSTEM, "Enable automatic milk quality grading",
             10, P1, LOW, (K.MILK_QUALITY_TESTING.value,)),
    _default(K.ADULTERATION_DETECTION, "Enable milk adulteration detection",
             10, P1, MEDIUM, (K.MILK_QUALITY_TESTING.value,)),
    # Phase 2
    _default(K.PERFORMANCE_REVIEWS, "Enable staff performance review system",
             5, P2, HIGH, (K.TASK_ASSIGNMENT_SYSTEM.value,)),
    _default(K.IOT_DEVICE_MANAGEMENT, "Enable IoT device registration and management",
             5, P2, HIGH, ("database_migration_iot",)),
    _default(K.SENSOR_DATA_INGESTION, "Enable real-time sensor data ingestion",
             5, P2, HIGH, (K.IOT_DEVICE_MANAGEMENT.value,)),
    _default(K.DASHBOARD_REDESIGN, "Enable new dashboard design", 0, P2, MEDIUM),
    _default(K.MOBILE_RESPONSIVE_UI, "Enable mobile-responsive UI components", 0, P2, LOW),
    _default(K.DARK_MODE_SUPPORT, "Enable dark mode support", 0, P2, LOW),
    _default(K.AUDIT_LOG_ENHANCEMENT, "Enable enhanced audit logging", 0, P2, LOW),
    # Phase 3: advanced, off by default
    _default(K.REAL_TIME_MONITORING, "Enable real-time monitoring dashboard",
             3, P3, HIGH, (K.SENSOR_DATA_INGESTION.value,)),
    _default(K.AI_PREDICTIVE_ANALYTICS, "Enable AI-powered predictive analytics",
             0, P3, HIGH, (K.SENSOR_DATA_INGESTION.value, K.MILK_QUALITY_TESTING.value)),
    _default(K.PRODUCTION_FORECASTING, "Enable production forecasting system",
             0, P3, HIGH, (K.AI_PREDICTIVE_ANALYTICS.value,)),
    _default(K.HEALTH_MONITORING_AI, "Enable AI-powered health monitoring",
             0, P3, HIGH, (K.AI_PREDICTIVE_ANALYTICS.value, K.SENSOR_DATA_INGESTION.value)),
    _default(K.COMPLIANCE_REPORTING, "Enable compliance reporting features",
             0, P3, MEDIUM, (K.AUDIT_LOG_ENHANCEMENT.value,)),
    _default(K.DATA_EXPORT_FEATURES, "Enable data export and reporting features",
             0, P3, MEDIUM, (K.COMPLIANCE_REPORTING.value,)),
)

DEFAULT_FLAGS: dict[CapabilityKey, CapabilityFlag] = {K(f.key): f for f in _DEFAULTS}

# Order in which capabilities are expected to roll out within each phase.
PHASE_ROLLOUT_ORDER: dict[RolloutPhase, tuple[CapabilityKey, ...]] = {
    P1: (
        K.VETERINARY_DISEASE_MANAGEMENT,
        K.MILK_QUALITY_TESTING,
        K.FEED_INVENTORY_TRACKING,
        K.STAFF_ATTENDANCE_TRACKING,
        K.QUALITY_GRADING_SYSTEM,
        K.ADULTERATION_DETECTION,
        K.NUTRITION_TEMPLATES,
        K.VETERINARY_TREATMENT_TRACKING,
        K.FEED_SCHEDULE_AUTOMATION,
        K.TASK_ASSIGNMENT_SYSTEM,
        K.VETERINARY_VACCINATION_SCHEDULES,
    ),
    P2: (
        K.AUDIT_LOG_ENHANCEMENT,
        K.MOBILE_RESPONSIVE_UI,
        K.DARK_MODE_SUPPORT,
        K.DASHBOARD_REDESIGN,
        K.IOT_DEVICE_MANAGEMENT,
        K.SENSOR_DATA_INGESTION,
        K.PERFORMANCE_REVIEWS,
    ),
    P3: (
        K.AI_PREDICTIVE_ANALYTICS,
        K.REAL_TIME_MONITORING,
        K.PRODUCTION_FORECASTING,
        K.HEALTH_MONITORING_AI,
        K.COMPLIANCE_REPORTING,
        K.DATA_EXPORT_FEATURES,
    ),
}


def default_flag(
    key: CapabilityKey, overrides: dict[str, bool] | None = None
) -> CapabilityFlag:
    """Return the built-in default for key, applying an environment override if present.

    An override of True forces the capability on for everyone (100%,
    enabled_default); False forces it off (0%).
    """
    flag = DEFAULT_FLAGS[key]
    if overrides and key.value in overrides:
        if overrides[key.value]:
            return flag.with_overrides(enabled_default=True, rollout_percentage=100)
        return flag.with_overrides(enabled_default=False, rollout_percentage=0)
    return flag
