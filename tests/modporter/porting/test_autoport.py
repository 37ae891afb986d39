# tests/modporter/porting/test_autoport.py
from __future__ import annotations

import pytest
from pydantic import BaseModel

from modporter.core.errors import MissingFieldError, ResourceNotFoundError
from modporter.porting.autoport import AutoPortBinder, AutoPortField
from modporter.porting.context import ModPorterContext
from modporter.porting.model_porter import ModelPorter


class Item(BaseModel):
    key: str
    name: str


@pytest.fixture()
def items(context: ModPorterContext) -> ModelPorter[Item]:
    porter: ModelPorter[Item] = ModelPorter(Item, subFolderName="Items")
    context.registerPorter(porter)
    porter.save(Item(key="sword", name="Sword"))
    porter.save(Item(key="shield", name="Shield"))
    return porter


def test_single_loadsByKeyOrPassesThrough(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    binder = AutoPortBinder(context, [AutoPortField("mainHand", Item), AutoPortField("offHand", Item)])
    embedded = Item(key="torch", name="Torch")

    bound = binder.build({"mainHand": "sword", "offHand": embedded, "unrelated": 1})

    assert bound == {"mainHand": Item(key="sword", name="Sword"), "offHand": embedded}


def test_list_mixesKeysAndModels(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    binder = AutoPortBinder(context, [AutoPortField("bag", Item, shape="list")])
    torch = Item(key="torch", name="Torch")

    assert binder.build({"bag": ["shield", torch]}) == {"bag": [Item(key="shield", name="Shield"), torch]}


def test_dict_isRekeyedByModelKeyUnlessPreserved(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    rekeyed = AutoPortBinder(context, [AutoPortField("slots", Item, shape="dict")])
    preserved = AutoPortBinder(context, [AutoPortField("slots", "Item", shape="dict", preserveKeys=True)])
    params = {"slots": {"left": "shield", "right": "sword"}}

    assert set(rekeyed.build(params)["slots"]) == {"shield", "sword"}
    assert set(preserved.build(params)["slots"]) == {"left", "right"}


def test_dict_acceptsListWhenKeysAreNotPreserved(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    binder = AutoPortBinder(context, [AutoPortField("slots", Item, shape="dict")])
    strict = AutoPortBinder(context, [AutoPortField("slots", Item, shape="dict", preserveKeys=True)])

    assert binder.build({"slots": ["sword"]}) == {"slots": {"sword": Item(key="sword", name="Sword")}}
    with pytest.raises(TypeError):
        strict.build({"slots": ["sword"]})


def test_required_missingParamRaises(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    binder = AutoPortBinder(context, [AutoPortField("weapon", Item, required=True, paramName="weaponId")])

    with pytest.raises(MissingFieldError):
        binder.build({"weapon": "sword"})
    assert binder.build({"weaponId": "sword"})["weapon"].name == "Sword"


def test_ignoredFields_andUnknownKeys(context: ModPorterContext, items: ModelPorter[Item]) -> None:
    binder = AutoPortBinder(context, [AutoPortField("skip", Item, ignore=True, required=True), AutoPortField("item", Item)])

    assert binder.build({}) == {}
    with pytest.raises(ResourceNotFoundError):
        binder.build({"item": "missing"})
