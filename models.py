from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


class TfsInfoError(Exception):
    """Base class for every failure that aborts a report run."""


class DecodeFieldError(ValueError):
    pass


def _lookup(data: Mapping[str, Any], name: str) -> Any:
    # Field names on the wire are matched without regard to case.
    if name in data:
        return data[name]
    lowered = name.lower()
    for key, value in data.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def _int_field(data: Mapping[str, Any], name: str) -> int:
    value = _lookup(data, name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeFieldError(f"{name}: expected integer, got {value!r}")
    return value


def _str_field(data: Mapping[str, Any], name: str) -> str:
    value = _lookup(data, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeFieldError(f"{name}: expected string, got {value!r}")
    return value


def _object(data: Any, what: str) -> Mapping[str, Any]:
    # A null record decodes to the zero record.
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodeFieldError(f"{what}: expected object, got {data!r}")
    return data


@dataclass(frozen=True)
class Settings:
    service_url: str = ""
    tfs_url: str = ""
    project_url: str = ""
    user: str = ""
    password: str = field(default="", repr=False)
    start_date: str = ""
    end_date: str = ""
    save_to_file: str = "changesets.html"
    template_file: str = ""


@dataclass(frozen=True)
class TfsRequest:
    tfs_url: str
    project_url: str
    user_name: str
    password: str = field(repr=False)
    start_date: str
    end_date: str

    def to_wire(self) -> Dict[str, str]:
        return {
            "TFSUrl": self.tfs_url,
            "TeamProjectUrl": self.project_url,
            "TFSUserName": self.user_name,
            "TFSPassword": self.password,
            "StartDate": self.start_date,
            "EndDate": self.end_date,
        }


@dataclass
class WorkItem:
    id: int
    title: str
    created_by: str = ""
    created_date: str = ""

    @classmethod
    def from_wire(cls, data: Any) -> "WorkItem":
        data = _object(data, "WorkItem")
        return cls(
            id=_int_field(data, "WorkItemId"),
            title=_str_field(data, "WorkItemTitle"),
            created_by=_str_field(data, "WorkItemCreatedBy"),
            created_date=_str_field(data, "WorkItemCreatedDate"),
        )


@dataclass
class ChangesetInfo:
    id: int
    comments: str = ""
    committed_by: str = ""
    committed_date: str = ""
    work_items: List[WorkItem] = field(default_factory=list)

    @classmethod
    def from_wire(cls, data: Any) -> "ChangesetInfo":
        data = _object(data, "Changeset")
        raw_items = _lookup(data, "WorkItems")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise DecodeFieldError(f"WorkItems: expected array, got {raw_items!r}")
        return cls(
            id=_int_field(data, "ChangesetId"),
            comments=_str_field(data, "Comments"),
            committed_by=_str_field(data, "CommittedBy"),
            committed_date=_str_field(data, "CommittedDate"),
            work_items=[WorkItem.from_wire(w) for w in raw_items],
        )
