# modporter/porting/keys.py
from __future__ import annotations
from dataclasses import dataclass

from modporter.core.errors import MalformedKeyError, MissingFieldError
from .constants import KEY_SEPARATOR, NAME_CONFIG_KEY

__all__ = ["ResourceKey", "formatKey", "parseKey", "packageOf", "validateKeyPart"]



def validateKeyPart(value: str, *, what: str) -> str:
    if KEY_SEPARATOR in value:
        raise MalformedKeyError(
            f"'{KEY_SEPARATOR}' cannot be used in {what}s; it is reserved as the package separator (got '{value}')"
        )
    return value



@dataclass(frozen=True, slots=True)
class ResourceKey:
    """
    Package-qualified identity of an imported resource: "<packageName>::<resourceName>".
    packageName may be None for resources that live directly under a porter folder.
    """
    packageName: str | None
    resourceName: str

    def __post_init__(self) -> None:
        if not self.resourceName:
            raise MissingFieldError(NAME_CONFIG_KEY, "A resource key needs a non-empty resource name")
        validateKeyPart(self.resourceName, what="resource name")
        if self.packageName is not None:
            validateKeyPart(self.packageName, what="package name")

    @property
    def composite(self) -> str:
        if self.packageName is None:
            return self.resourceName
        return f"{self.packageName}{KEY_SEPARATOR}{self.resourceName}"

    def __str__(self) -> str:
        return self.composite



def formatKey(packageName: str | None, resourceName: str) -> str:
    return ResourceKey(packageName, resourceName).composite



def parseKey(text: str) -> ResourceKey:
    """
    "pkg::name" -> ResourceKey("pkg", "name"); "name" -> ResourceKey(None, "name").
    More than one separator is always malformed.
    """
    parts = str(text).split(KEY_SEPARATOR)
    if len(parts) == 1:
        return ResourceKey(None, parts[0])
    if len(parts) == 2:
        return ResourceKey(parts[0], parts[1])
    raise MalformedKeyError(
        f"Resource key '{text}' contains {len(parts) - 1} '{KEY_SEPARATOR}' separators; exactly one is allowed"
    )



def packageOf(packageOrResourceKey: str) -> str:
    """Package portion of a package key or a resource key."""
    if KEY_SEPARATOR in packageOrResourceKey:
        return packageOrResourceKey.split(KEY_SEPARATOR, 1)[0]
    return packageOrResourceKey
