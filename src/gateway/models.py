"""Data models for gems, their dependencies and the repositories serving them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from yarl import URL

from constants import Constants


@dataclass(frozen=True)
class Repository:
    """An upstream gem repository and its place in the priority order."""

    base_url: str
    priority: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def dependencies_url(self) -> str:
        """URL of the dependency metadata endpoint."""
        return f"{self.base_url}{Constants.DEPENDENCIES_PATH}"

    def gem_url(self, identity: "PackageIdentity | str") -> str:
        """URL of the .gem file for identity on this repository."""
        return str(URL(self.base_url) / "gems" / f"{identity}{Constants.GEM_SUFFIX}")

    def __str__(self) -> str:
        return self.base_url


@dataclass(frozen=True)
class PackageIdentity:
    """Unique key of a gem variant: (name, version, platform)."""

    name: str
    version: str
    platform: str = Constants.DEFAULT_PLATFORM

    def __str__(self) -> str:
        if self.platform == Constants.DEFAULT_PLATFORM:
            return f"{self.name}-{self.version}"
        return f"{self.name}-{self.version}-{self.platform}"


@dataclass(frozen=True)
class DependencyEdge:
    """Runtime dependency on another gem; requirement is kept verbatim."""

    name: str
    requirement: str


@dataclass(frozen=True)
class PackageRecord:
    """Dependency metadata for one gem variant as served by one repository."""

    name: str
    version: str
    platform: str
    dependencies: Tuple[DependencyEdge, ...] = field(default_factory=tuple)
    repository: Optional[Repository] = None

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.name, self.version, self.platform)
