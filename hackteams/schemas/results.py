"""Result objects returned by every team action."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


class Change(BaseModel):
    """One entity touched by an action, for callers that invalidate caches."""
    kind: str
    id: Any
    action: str


class ActionResult(BaseModel):
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    data: Dict[str, Any] = {}
    changes: List[Change] = []

    @classmethod
    def ok(cls, changes: Optional[List[Change]] = None, **data) -> "ActionResult":
        return cls(success=True, data=data, changes=changes or [])

    @classmethod
    def fail(cls, code, message: Optional[str] = None, changes: Optional[List[Change]] = None) -> "ActionResult":
        return cls(
            success=False,
            code=code.value,
            error=message or code.message,
            changes=changes or [],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into ``{success, ...data}`` or ``{success, error, code}``."""
        changes = [c.model_dump(mode="json") for c in self.changes]
        if self.success:
            body = {"success": True}
            for key, value in self.data.items():
                body[key] = _dump(value)
            body["changes"] = changes
            return body
        return {"success": False, "error": self.error, "code": self.code, "changes": changes}
