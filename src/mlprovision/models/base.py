from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ToDictMixin:
    """
    Gives report dataclasses a JSON-friendly to_dict().

    Enums become their values and nested models are converted recursively.
    Subclasses add computed keys through _to_dict_extra().
    """

    def to_dict(self) -> Dict[str, Any]:
        if not is_dataclass(self):
            raise TypeError(f"{self.__class__.__name__} is not a dataclass")

        result = {f.name: _plain(getattr(self, f.name)) for f in fields(self)}
        result.update(self._to_dict_extra() or {})
        return result

    def _to_dict_extra(self) -> Optional[Dict[str, Any]]:
        return None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ToDictMixin):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
