"""
Domain value types shared by the queue, the reconciler and the read APIs.

Tagged author records replace the loosely-typed JSON blobs stored in the
``dataset.authors`` column. ``Author.from_dict`` accepts both our own
spelling and the DataCite export spelling (``nameType``,
``affiliation``, ``nameIdentifiers``) so rows loaded by bulk importers
parse without a migration.

Tags:
    models, dataclasses, datacite, authors, dindex

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class ScoreSubmission:
    """One worker-computed FAIR score, already validated."""

    dataset_id: int
    score: float
    evaluation_date: datetime
    metric_version: str
    software_version: str


@dataclass(frozen=True)
class DatasetDescriptor:
    """What a worker needs to score one dataset."""

    dataset_id: int
    identifier: str
    identifier_type: str

    def to_wire(self) -> dict[str, Any]:
        """Worker-facing JSON shape."""
        return {
            "datasetId": self.dataset_id,
            "identifier": self.identifier,
            "identifierType": self.identifier_type,
        }


class NameType(str, Enum):
    PERSONAL = "Personal"
    ORGANIZATIONAL = "Organizational"

    @classmethod
    def parse(cls, value: Any) -> NameType:
        """Parse loosely; anything unrecognised is treated as a person."""
        if isinstance(value, str) and value.strip().lower().startswith("org"):
            return cls.ORGANIZATIONAL
        return cls.PERSONAL


@dataclass(frozen=True)
class NameIdentifier:
    scheme: str
    value: str

    @classmethod
    def from_any(cls, raw: Any) -> NameIdentifier | None:
        if isinstance(raw, str):
            return cls(scheme="", value=raw) if raw else None
        if not isinstance(raw, dict):
            return None
        value = raw.get("value") or raw.get("nameIdentifier")
        if not value:
            return None
        scheme = raw.get("scheme") or raw.get("nameIdentifierScheme") or ""
        return cls(scheme=str(scheme), value=str(value))


@dataclass(frozen=True)
class Author:
    """A dataset creator: a person or an organisation."""

    name: str
    name_type: NameType = NameType.PERSONAL
    affiliations: tuple[str, ...] = ()
    name_identifiers: tuple[NameIdentifier, ...] = ()

    @property
    def is_organization(self) -> bool:
        return self.name_type is NameType.ORGANIZATIONAL

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Author:
        affiliations = raw.get("affiliations", raw.get("affiliation", []))
        if isinstance(affiliations, str):
            affiliations = [affiliations]
        names: list[str] = []
        for aff in affiliations or []:
            if isinstance(aff, dict):
                aff = aff.get("name")
            if aff:
                names.append(str(aff))

        identifiers = raw.get("name_identifiers", raw.get("nameIdentifiers", []))
        if not isinstance(identifiers, list):
            identifiers = [identifiers]
        parsed = tuple(
            ni for ni in (NameIdentifier.from_any(i) for i in identifiers) if ni is not None
        )

        return cls(
            name=str(raw.get("name") or "").strip(),
            name_type=NameType.parse(raw.get("name_type", raw.get("nameType"))),
            affiliations=tuple(names),
            name_identifiers=parsed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nameType": self.name_type.value,
            "name": self.name,
            "affiliations": list(self.affiliations),
            "nameIdentifiers": [
                {"scheme": ni.scheme, "value": ni.value} for ni in self.name_identifiers
            ],
        }


def parse_authors(raw: Any) -> list[Author]:
    """Parse the JSON ``authors`` column, skipping entries that are not objects."""
    if not isinstance(raw, list):
        return []
    return [Author.from_dict(item) for item in raw if isinstance(item, dict)]


@dataclass
class ReconcileOutcome:
    """Per-batch tallies from the result reconciler."""

    updated: list[int] = field(default_factory=list)
    duplicates: list[int] = field(default_factory=list)
    missing: list[int] = field(default_factory=list)

    @property
    def received(self) -> int:
        return len(self.updated) + len(self.duplicates) + len(self.missing)

    def to_dict(self) -> dict[str, Any]:
        return {
            "received": self.received,
            "updated": len(self.updated),
            "duplicates": len(self.duplicates),
            "missing": list(self.missing),
        }


@dataclass
class SeedReport:
    """Summary of one seeding run."""

    total_candidates: int = 0
    inserted: int = 0
    rounds: int = 0
    truncated: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_candidates": self.total_candidates,
            "inserted": self.inserted,
            "rounds": self.rounds,
            "truncated": self.truncated,
        }


__all__ = [
    "DatasetDescriptor",
    "ScoreSubmission",
    "NameType",
    "NameIdentifier",
    "Author",
    "parse_authors",
    "ReconcileOutcome",
    "SeedReport",
]
