# modporter/config/layers.py
from __future__ import annotations
from typing import Any, Literal, cast
from collections.abc import Mapping
from dataclasses import dataclass, field
import copy

__all__ = [
    "MergeStrategy", "mergeWithStrategy", "ConfigLayer", "ConfigStack",
]



MergeStrategy = Literal["deep", "replace"]
_ALL_STRATEGIES: tuple[str, ...] = ("deep", "replace")



def mergeWithStrategy(left: Any, right: Any) -> Any:
    """
    Deep merge with an optional per-object directive:
      - dicts: if right has __merge, apply behavior:
        "deep" (default): recurse on dicts, replace other types
        "replace": replace left entirely with right (minus __merge)
      - lists: right replaces left
      - scalars: right replaces left
    Inputs are never mutated.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        strategy: MergeStrategy = cast(MergeStrategy, right.get("__merge", "deep"))
        if strategy not in _ALL_STRATEGIES:
            raise ValueError(f"Invalid __merge='{strategy}'; allowed: {', '.join(_ALL_STRATEGIES)}")
        if strategy == "replace":
            return {key: copy.deepcopy(value) for key, value in right.items() if key != "__merge"}

        out: dict[str, Any] = {key: copy.deepcopy(value) for key, value in left.items()}
        for key, rightValue in right.items():
            if key == "__merge":
                continue
            leftValue = out.get(key)
            if isinstance(leftValue, Mapping) and isinstance(rightValue, Mapping):
                out[key] = mergeWithStrategy(leftValue, rightValue)
            else:
                out[key] = copy.deepcopy(rightValue)
        return out
    if isinstance(right, list):
        return list(right) # avoid aliasing
    return copy.deepcopy(right)



@dataclass(frozen=True)
class ConfigLayer:
    """
    One immutable configuration layer.
    - name: human readable
    - scope: where the values came from; later scopes win
    - data: plain JSON-like dict
    """
    name: str
    scope: Literal["defaults", "file", "env", "override"]
    data: dict[str, Any] = field(default_factory=dict)



class ConfigStack:
    """
    An ordered set of layers; later layers take precedence.
    """
    def __init__(self, layers: list[ConfigLayer] | None = None):
        self._layers: list[ConfigLayer] = list(layers or [])

    def addLayer(self, layer: ConfigLayer) -> None:
        self._layers.append(layer)

    def removeLayer(self, name: str) -> bool:
        idx = next((index for index, layer in enumerate(self._layers) if layer.name == name), -1)
        if idx >= 0:
            del self._layers[idx]
            return True
        return False

    def layers(self) -> tuple[ConfigLayer, ...]:
        return tuple(self._layers)

    def merged(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for layer in self._layers:
            out = mergeWithStrategy(out, layer.data)
        return out
