# modporter/porting/autoport.py
from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from modporter.core.errors import MissingFieldError

if TYPE_CHECKING:
    from .context import ModPorterContext
    from .model_porter import ModelPorter

logger = logging.getLogger(__name__)

__all__ = ["AutoPortField", "AutoPortBinder"]



@dataclass(frozen=True)
class AutoPortField:
    """
    Declares that a build parameter holds model references: either embedded
    models or string keys that get loaded through the model's porter.
    """
    name: str
    modelType: type[BaseModel] | str
    shape: Literal["single", "list", "dict"] = "single"
    # dict shape: keep the caller's keys instead of re-keying by model key
    preserveKeys: bool = False
    ignore: bool = False
    required: bool = False
    # Parameter to read from when it differs from the field name
    paramName: str | None = None



class AutoPortBinder:
    """
    Resolves the declared AutoPort fields of one model type out of a parameter
    mapping. Other parameters are not touched.

        binder = AutoPortBinder(context, [AutoPortField("weapon", Weapon, required=True)])
        binder.build({"weapon": "sword-01"}) -> {"weapon": Weapon(...)}
    """

    def __init__(self, context: ModPorterContext, fields: Iterable[AutoPortField]):
        self.context = context
        self.fields = tuple(fields)

    def build(self, params: Mapping[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for field in self.fields:
            if field.ignore:
                continue
            paramName = field.paramName or field.name
            value = params.get(paramName)
            if value is None:
                if field.required:
                    raise MissingFieldError(
                        paramName,
                        f"Missing parameter '{paramName}': expected {field.shape} of {self._typeName(field)} or its key(s)",
                    )
                continue
            out[field.name] = self._bind(field, value)
        return out

    def _bind(self, field: AutoPortField, value: Any) -> Any:
        porter = self.context.getModelPorter(field.modelType)

        if field.shape == "single":
            return self._load(porter, value)

        if field.shape == "list":
            if isinstance(value, (str, Mapping)) or not isinstance(value, Iterable):
                raise TypeError(f"'{field.name}' expects a list, got {type(value).__name__}")
            return [self._load(porter, item) for item in value]

        if isinstance(value, Mapping):
            if field.preserveKeys:
                return {str(key): self._load(porter, item) for key, item in value.items()}
            return self._keyed(porter, value.values())
        if field.preserveKeys or isinstance(value, str) or not isinstance(value, Iterable):
            raise TypeError(f"'{field.name}' expects a mapping of keys to models, got {type(value).__name__}")
        # Without preserved keys a plain list is accepted and re-keyed
        return self._keyed(porter, value)

    def _keyed(self, porter: ModelPorter, values: Iterable[Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for item in values:
            model = self._load(porter, item)
            out[porter.keyOf(model)] = model
        return out

    @staticmethod
    def _load(porter: ModelPorter, value: Any) -> Any:
        if isinstance(value, str):
            return porter.loadByKey(value)
        return value

    @staticmethod
    def _typeName(field: AutoPortField) -> str:
        return field.modelType if isinstance(field.modelType, str) else field.modelType.__name__
