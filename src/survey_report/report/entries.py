# entries.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union


TOTAL_CODE = "_X_"
TOTAL_LABEL = "Total"

SUPPRESSED_MESSAGE = "The number of responses is insufficient to display the data"
UNKNOWN_TYPE_MESSAGE = "ERROR: unknown question type"


@dataclass(frozen=True)
class DistributionEntry:
    code: str
    label: str
    count: int = 0
    percentage: float = 0.0

    @property
    def is_total(self) -> bool:
        return self.code == TOTAL_CODE

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "count": self.count, "percentage": self.percentage}


class Distribution:
    """
    Ordered association list of answer entries for one response column.

    Entry order is display order. Codes are unique; the synthetic total
    entry (``_X_``) is optional and, once post-processing ran, always last.

    Handlers fill a distribution through ``add``/``fold``; post-processing
    then freezes it, after which every change raises ``TypeError``.
    """

    def __init__(self, entries: Optional[Sequence[DistributionEntry]] = None):
        self._entries: Union[List[DistributionEntry], Tuple[DistributionEntry, ...]] = []
        self._frozen = False
        for e in entries or ():
            self.add(e.code, e.label, e.count, e.percentage)

    @classmethod
    def with_vocabulary(cls, vocabulary: Sequence[Tuple[str, str]], total: bool = True) -> "Distribution":
        d = cls()
        for code, label in vocabulary:
            d.add(code, label)
        if total:
            d.add_total()
        return d

    # -------------------------
    # Building
    # -------------------------
    def _check_open(self) -> None:
        if self._frozen:
            raise TypeError("finished distribution cannot be changed")

    def _index(self, code: str) -> int:
        for i, e in enumerate(self._entries):
            if e.code == code:
                return i
        return -1

    def add(self, code: str, label: str, count: int = 0, percentage: float = 0.0) -> DistributionEntry:
        self._check_open()
        code = str(code)
        if self._index(code) >= 0:
            raise ValueError(f"duplicate distribution code: {code!r}")
        entry = DistributionEntry(code=code, label=label, count=int(count), percentage=percentage)
        self._entries.append(entry)
        return entry

    def add_total(self) -> DistributionEntry:
        return self.add(TOTAL_CODE, TOTAL_LABEL, 0, 100.0)

    def update(self, code: str, **changes: Any) -> DistributionEntry:
        """Replace the entry for ``code`` with a copy carrying ``changes``."""
        self._check_open()
        i = self._index(code)
        if i < 0:
            raise KeyError(code)
        entry = replace(self._entries[i], **changes)
        self._entries[i] = entry
        return entry

    def fold(self, code: str, count: int, label: Optional[str] = None) -> bool:
        """
        Add ``count`` to the entry for ``code`` and to the total.

        Unknown codes are appended only when ``label`` is given (data-driven
        vocabularies); otherwise the value is rejected and False is returned.
        """
        self._check_open()
        code = str(code)
        entry = self.get(code)
        if entry is None:
            if label is None:
                return False
            entry = self.add(code, label)
        self.update(code, count=entry.count + int(count))
        total = self.total
        if total is not None and code != TOTAL_CODE:
            self.update(TOTAL_CODE, count=total.count + int(count))
        return True

    def move_to_end(self, code: str) -> None:
        self._check_open()
        i = self._index(code)
        if i >= 0:
            self._entries.append(self._entries.pop(i))

    def freeze(self) -> "Distribution":
        if not self._frozen:
            self._entries = tuple(self._entries)
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -------------------------
    # Reading
    # -------------------------
    def get(self, code: str) -> Optional[DistributionEntry]:
        i = self._index(code)
        return self._entries[i] if i >= 0 else None

    @property
    def total(self) -> Optional[DistributionEntry]:
        return self.get(TOTAL_CODE)

    def entries(self, include_total: bool = True) -> List[DistributionEntry]:
        if include_total:
            return list(self._entries)
        return [e for e in self._entries if not e.is_total]

    def codes(self) -> List[str]:
        return [e.code for e in self._entries]

    def __iter__(self) -> Iterator[DistributionEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Distribution):
            return NotImplemented
        return tuple(self._entries) == tuple(other._entries)

    def __repr__(self) -> str:
        return f"Distribution({list(self._entries)!r})"

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {e.code: e.to_dict() for e in self._entries}


@dataclass(frozen=True)
class RawList:
    values: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Suppressed:
    message: str = SUPPRESSED_MESSAGE


@dataclass(frozen=True)
class UnknownType:
    tag: str
    message: str = UNKNOWN_TYPE_MESSAGE


Result = Union[Distribution, RawList, Suppressed, UnknownType, None]


@dataclass(frozen=True)
class QuestionReport:
    code: str
    text: str
    type: str
    mandatory: bool = False
    numeric_only: bool = False
    hidden: bool = False
    result: Result = None

    def with_result(self, result: Result) -> "QuestionReport":
        return replace(self, result=result)

    @property
    def answers(self) -> Union[Distribution, RawList, None]:
        if isinstance(self.result, (Distribution, RawList)):
            return self.result
        return None

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.result, (Suppressed, UnknownType)):
            return self.result.message
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "code": self.code,
            "text": self.text,
            "type": self.type,
            "mandatory": self.mandatory,
            "numericOnly": self.numeric_only,
            "hidden": self.hidden,
        }
        if isinstance(self.result, Distribution):
            out["answers"] = self.result.to_dict()
        elif isinstance(self.result, RawList):
            out["answers"] = list(self.result.values)
        elif self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class Report:
    """Read-only view: group name -> response column key -> QuestionReport, in display order."""

    groups: Mapping[str, Mapping[str, QuestionReport]] = field(default_factory=dict)

    @classmethod
    def from_groups(cls, groups: Mapping[str, Mapping[str, QuestionReport]]) -> "Report":
        frozen = {name: MappingProxyType(dict(items)) for name, items in groups.items()}
        return cls(groups=MappingProxyType(frozen))

    def __getitem__(self, group: str) -> Mapping[str, QuestionReport]:
        return self.groups[group]

    def __iter__(self) -> Iterator[str]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def __contains__(self, group: object) -> bool:
        return group in self.groups

    def items(self):
        return self.groups.items()

    def keys(self) -> List[str]:
        # Every response column key, in display order.
        return [k for items in self.groups.values() for k in items]

    def find(self, key: str) -> Optional[QuestionReport]:
        for items in self.groups.values():
            if key in items:
                return items[key]
        return None

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {g: {k: qr.to_dict() for k, qr in items.items()} for g, items in self.groups.items()}
