from .status import Status, FEATURE_GROUPS, FEATURE_GROUP_LABELS, normalize_task_status
from .feature import Feature, FeatureDetail, FeaturesIndex, FeatureTask
from .errors import (
    InvokerError,
    ModeConflictError,
    NotFoundError,
    ServerNotFoundError,
    TddProError,
    ValidationError,
)

__all__ = [
    "Status",
    "FEATURE_GROUPS",
    "FEATURE_GROUP_LABELS",
    "normalize_task_status",
    # Records
    "Feature",
    "FeatureDetail",
    "FeaturesIndex",
    "FeatureTask",
    # Errors
    "InvokerError",
    "ModeConflictError",
    "NotFoundError",
    "ServerNotFoundError",
    "TddProError",
    "ValidationError",
]
