"""Wire codec for the dependency API.

Upstream bodies are a JSON array of entries shaped like the RubyGems
dependency API::

    [{"name": "rack", "number": "2.2.8", "platform": "ruby",
      "dependencies": [["webrick", ">= 0"]]}]

Decoding is a single strict pydantic validation; any mismatch surfaces as
one DecodeError for the repository that sent the body.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from constants import Constants

from .errors import DecodeError
from .models import DependencyEdge, PackageRecord, Repository


class DependencyEntry(BaseModel):
    """One gem variant as it appears on the wire."""

    model_config = ConfigDict(strict=True, frozen=True)

    name: str
    number: str
    platform: str = Constants.DEFAULT_PLATFORM
    dependencies: List[Tuple[str, str]] = Field(default_factory=list)

    def to_record(self, repository: Repository) -> PackageRecord:
        return PackageRecord(
            name=self.name,
            version=self.number,
            platform=self.platform,
            dependencies=tuple(DependencyEdge(n, req) for n, req in self.dependencies),
            repository=repository,
        )

    @classmethod
    def from_record(cls, record: PackageRecord) -> "DependencyEntry":
        return cls(
            name=record.name,
            number=record.version,
            platform=record.platform,
            dependencies=[(dep.name, dep.requirement) for dep in record.dependencies],
        )


_ENTRIES = TypeAdapter(List[DependencyEntry])


def decode_dependencies(body: bytes, repository: Repository) -> List[PackageRecord]:
    """Decode an upstream body into records tagged with repository.

    Args:
        body: Raw response body.
        repository: Repository the body came from.

    Returns:
        Records in the order the upstream listed them.

    Raises:
        DecodeError: If the body is not valid JSON or does not match the schema.
    """
    try:
        entries = _ENTRIES.validate_json(body)
    except ValidationError as exc:
        raise DecodeError(
            repository, f"malformed dependency response ({exc.error_count()} errors)"
        ) from exc
    return [entry.to_record(repository) for entry in entries]


def encode_dependencies(records: Iterable[PackageRecord]) -> bytes:
    """Encode records for the gateway's dependency response."""
    return _ENTRIES.dump_json([DependencyEntry.from_record(r) for r in records])
