import json
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel

OBJECT_PLACEHOLDER = "[Object]"
ARRAY_PLACEHOLDER = "[Array]"


def limit_depth(value: Any, max_depth: Optional[int], _level: int = 0) -> Any:
    """
    Replaces containers nested deeper than max_depth with a placeholder.
    Depth 0 keeps the top-level container only. None disables the limit.
    """
    if isinstance(value, Mapping):
        if max_depth is not None and _level > max_depth:
            return OBJECT_PLACEHOLDER
        return {key: limit_depth(item, max_depth, _level + 1) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        if max_depth is not None and _level > max_depth:
            return ARRAY_PLACEHOLDER
        return [limit_depth(item, max_depth, _level + 1) for item in value]

    return value


def dump_models(models: BaseModel | Iterable[BaseModel], max_depth: Optional[int] = None, indent: int = 2) -> str:
    """Renders one model or a sequence of models as depth-bounded JSON."""
    if isinstance(models, BaseModel):
        data: Any = models.model_dump(mode="json")
    else:
        data = [model.model_dump(mode="json") for model in models]
    return json.dumps(limit_depth(data, max_depth), indent=indent)
