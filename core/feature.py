from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .status import FEATURE_GROUPS, FEATURE_GROUP_LABELS, Status


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


@dataclass
class Feature:
    id: str
    name: str
    description: str = ""
    status: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], status: str = "") -> "Feature":
        return cls(
            id=str(data.get("id", "") or ""),
            name=str(data.get("name", "") or data.get("id", "") or ""),
            description=str(data.get("description", "") or ""),
            status=str(data.get("status", "") or status),
        )

    def meta_fields(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass
class FeatureTask:
    id: str
    title: str
    description: str = ""
    acceptance_criteria: List[str] = field(default_factory=list)
    status: str = "pending"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureTask":
        # The store writes `name`/`acceptance_criteria`; older payloads use `title`/`evaluation_criteria`.
        criteria = data.get("acceptance_criteria")
        if criteria is None:
            criteria = data.get("evaluation_criteria")
        return cls(
            id=str(data.get("id", "") or ""),
            title=str(data.get("name") or data.get("title") or ""),
            description=str(data.get("description", "") or ""),
            acceptance_criteria=_str_list(criteria),
            status=str(data.get("status", "") or "pending"),
        )

    @property
    def status_value(self) -> Status:
        return Status.from_string(self.status)

    def edit_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "acceptance_criteria": list(self.acceptance_criteria),
        }


@dataclass
class FeatureDetail:
    id: str
    name: str = ""
    tasks: List[FeatureTask] = field(default_factory=list)
    prd: str = ""

    @classmethod
    def from_dict(cls, feature_id: str, data: Dict[str, Any]) -> "FeatureDetail":
        index = data.get("index") if isinstance(data.get("index"), dict) else {}
        raw_tasks = data.get("tasks") if isinstance(data.get("tasks"), list) else []
        return cls(
            id=feature_id,
            name=str(index.get("name", "") or data.get("name", "") or ""),
            tasks=[FeatureTask.from_dict(t) for t in raw_tasks if isinstance(t, dict)],
            prd=str(data.get("prd", "") or ""),
        )

    def task_at(self, index: Optional[int]) -> Optional[FeatureTask]:
        if index is None or not (0 <= index < len(self.tasks)):
            return None
        return self.tasks[index]


@dataclass
class FeaturesIndex:
    approved: List[Feature] = field(default_factory=list)
    planned: List[Feature] = field(default_factory=list)
    refinement: List[Feature] = field(default_factory=list)
    backlog: List[Feature] = field(default_factory=list)
    current_features: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeaturesIndex":
        groups: Dict[str, List[Feature]] = {}
        for group in FEATURE_GROUPS:
            raw = data.get(group) if isinstance(data.get(group), list) else []
            groups[group] = [Feature.from_dict(item, status=group) for item in raw if isinstance(item, dict)]
        current = _str_list(data.get("current_features"))
        legacy = str(data.get("current_feature") or "").strip()
        if legacy and not current:
            current = [legacy]
        return cls(current_features=current, **groups)

    def all_features(self) -> List[Feature]:
        return [*self.approved, *self.planned, *self.refinement, *self.backlog]

    def current(self) -> List[Feature]:
        wanted = set(self.current_features)
        return [f for f in self.all_features() if f.id in wanted]

    def groups(self) -> List[Tuple[str, List[Feature]]]:
        """Navigator groups with display labels, current features first."""
        rows: List[Tuple[str, List[Feature]]] = [(FEATURE_GROUP_LABELS["current"], self.current())]
        for group in FEATURE_GROUPS:
            rows.append((FEATURE_GROUP_LABELS[group], list(getattr(self, group))))
        return rows

    def index_of(self, feature_id: Optional[str]) -> Optional[int]:
        for idx, feature in enumerate(self.all_features()):
            if feature.id == feature_id:
                return idx
        return None
