"""Typed facade over the feature store's tool surface."""

import logging
from typing import Any, Dict

from application.ports import ToolInvoker
from core import FeatureDetail, FeaturesIndex, InvokerError, NotFoundError

logger = logging.getLogger("tddpro.store")

# Draft field name -> store field name for update-task.
_TASK_FIELD_MAP = {
    "title": "name",
    "description": "description",
    "acceptance_criteria": "acceptance_criteria",
}


class FeatureClient:
    def __init__(self, invoker: ToolInvoker, cwd: str = ".") -> None:
        self.invoker = invoker
        self.cwd = cwd

    def _call(self, tool: str, **args: Any) -> Any:
        payload = {"cwd": self.cwd, **args}
        logger.debug("invoke %s %s", tool, sorted(payload))
        return self.invoker.invoke(tool, payload)

    @staticmethod
    def _expect_dict(tool: str, content: Any) -> Dict[str, Any]:
        if not isinstance(content, dict):
            raise InvokerError(f"{tool}: unexpected response", tool=tool)
        return content

    @staticmethod
    def _check_success(tool: str, content: Dict[str, Any]) -> None:
        if content.get("success") is False:
            raise InvokerError(str(content.get("error") or f"{tool} failed"), tool=tool)

    def list_features(self) -> FeaturesIndex:
        content = self._call("list-features")
        if content is None:
            return FeaturesIndex()
        return FeaturesIndex.from_dict(self._expect_dict("list-features", content))

    def get_feature(self, feature_id: str) -> FeatureDetail:
        if not feature_id:
            raise NotFoundError(feature_id or "?", "No feature selected")
        content = self._call("get-feature", featureId=feature_id)
        if content is None:
            raise NotFoundError(feature_id)
        return FeatureDetail.from_dict(feature_id, self._expect_dict("get-feature", content))

    def update_task(self, feature_id: str, task_id: str, diff: Dict[str, Any]) -> None:
        updates: Dict[str, Any] = {}
        for key, value in diff.items():
            updates[_TASK_FIELD_MAP.get(key, key)] = value
        content = self._call("update-task", featureId=feature_id, taskId=task_id, updates=updates)
        if isinstance(content, dict):
            self._check_success("update-task", content)

    def get_document(self, feature_id: str) -> str:
        content = self._expect_dict(
            "get-feature-document", self._call("get-feature-document", featureId=feature_id)
        )
        if content.get("success") is False:
            raise NotFoundError(feature_id, str(content.get("error") or f"No document for {feature_id}"))
        return str(content.get("content") or "")

    def update_document(self, feature_id: str, body: str) -> None:
        content = self._call("update-feature-document", featureId=feature_id, content=body)
        if isinstance(content, dict):
            self._check_success("update-feature-document", content)

    def update_feature(self, feature_id: str, diff: Dict[str, Any]) -> None:
        updates = {k: v for k, v in diff.items() if k in ("name", "description")}
        content = self._call("update-feature", featureId=feature_id, updates=updates)
        if isinstance(content, dict):
            self._check_success("update-feature", content)


__all__ = ["FeatureClient"]
