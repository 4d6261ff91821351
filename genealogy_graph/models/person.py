from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Scalar properties written to (:Person) nodes, in store order.
SCALAR_FIELDS = (
    "name",
    "first_name",
    "middle_name",
    "last_name",
    "gender",
    "birth",
    "birth_place",
    "death",
    "death_place",
    "burial",
    "burial_place",
    "marriage_date",
    "father",
    "mother",
    "page",
)


def _unique(ids: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for i in ids:
        if i and i not in seen:
            seen.add(i)
            out.append(i)
    return out


class Person(BaseModel):
    """One genealogy record.

    Field names are snake_case in Python and camelCase on the wire (snapshot
    JSON and Neo4j properties). Optional fields are None when the source page
    did not provide them, never an empty string.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Site record number (anchor i<N> -> N)")
    name: str = ""
    first_name: Optional[str] = Field(None, alias="firstName")
    middle_name: Optional[str] = Field(None, alias="middleName")
    last_name: Optional[str] = Field(None, alias="lastName")
    gender: Optional[str] = None
    birth: Optional[str] = None
    birth_place: Optional[str] = Field(None, alias="birthPlace")
    death: Optional[str] = None
    death_place: Optional[str] = Field(None, alias="deathPlace")
    burial: Optional[str] = None
    burial_place: Optional[str] = Field(None, alias="burialPlace")
    marriage_date: Optional[str] = Field(None, alias="marriageDate")
    father: Optional[str] = None
    mother: Optional[str] = None
    spouses: List[str] = Field(default_factory=list)
    children: List[str] = Field(default_factory=list)
    page: Optional[str] = Field(None, description="Source page the record was parsed from")

    def model_post_init(self, __context: Any) -> None:
        self.spouses = _unique(self.spouses)
        self.children = _unique(self.children)

    def merge(self, other: "Person") -> "Person":
        """Fill-missing-only merge of another parse of the same record.

        Populated fields are kept; empty ones are filled from `other`.
        Spouse and child ids are unioned in first-seen order. Mutates and
        returns self.
        """
        if other.id != self.id:
            raise ValueError(f"Cannot merge person {other.id} into {self.id}")
        for field in SCALAR_FIELDS:
            if not getattr(self, field) and getattr(other, field):
                setattr(self, field, getattr(other, field))
        self.spouses = _unique(self.spouses + other.spouses)
        self.children = _unique(self.children + other.children)
        return self

    def to_json_dict(self) -> Dict[str, Any]:
        """Snapshot shape: camelCase keys, absent optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_store_params(self) -> Dict[str, Any]:
        """Node properties with every scalar key present (None when unknown)."""
        data = self.model_dump(by_alias=True, exclude={"spouses", "children"})
        data["name"] = self.name or None
        return data

    def sort_key(self):
        return (0, int(self.id), "") if self.id.isdigit() else (1, 0, self.id)


class SnapshotMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    export_date: str = Field(..., alias="exportDate")
    total_people: int = Field(..., alias="totalPeople")
    total_files: int = Field(..., alias="totalFiles")
    source: str
    source_location: str = Field(..., alias="sourceLocation")


class SnapshotFile(BaseModel):
    """A full export of parsed records, used between the parse and load phases."""

    metadata: SnapshotMetadata
    people: List[Person] = Field(default_factory=list)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.model_dump(by_alias=True),
            "people": [p.to_json_dict() for p in self.people],
        }
