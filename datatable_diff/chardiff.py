"""
Character-level differences between two canonical cell values

The row/cell diff only depends on the CharDiffAdapter protocol; the difflib
based adapter below is the default implementation.
"""

import difflib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple


class SpanKind(Enum):
    """Kind of a character span in a fine-grained diff"""
    EQUAL = "equal"
    INSERTED = "inserted"
    DELETED = "deleted"


@dataclass(frozen=True)
class CharSpan:
    """
    A run of characters sharing the same change kind.

    An EQUAL span that stands for an ignored whitespace-only change keeps the
    old side's text in original; text is always the new side.
    """
    kind: SpanKind
    text: str
    original: Optional[str] = None

    @property
    def old_side(self) -> str:
        return self.text if self.original is None else self.original

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {'kind': self.kind.value, 'text': self.text}
        if self.original is not None:
            result['original'] = self.original
        return result


@dataclass(frozen=True)
class CharDiffModel:
    """Displayable sequence of equal/inserted/deleted spans"""
    spans: Tuple[CharSpan, ...] = ()

    @property
    def old_text(self) -> str:
        return "".join(s.old_side for s in self.spans if s.kind is not SpanKind.INSERTED)

    @property
    def new_text(self) -> str:
        return "".join(s.text for s in self.spans if s.kind is not SpanKind.DELETED)

    def has_differences(self) -> bool:
        """Check if any span is an insertion or a deletion"""
        return any(s.kind is not SpanKind.EQUAL for s in self.spans)

    def inverted(self) -> "CharDiffModel":
        """
        Get the model describing the change from new text back to old text.

        Inserted and deleted spans swap kinds; within each run of changed
        spans deletions are listed before insertions, the order difflib uses
        for a replacement.
        """
        spans: List[CharSpan] = []
        run: List[CharSpan] = []
        for span in self.spans:
            if span.kind is SpanKind.EQUAL:
                spans.extend(_order_run(run))
                run = []
                if span.original is not None:
                    span = CharSpan(SpanKind.EQUAL, span.original, span.text)
                spans.append(span)
            else:
                run.append(CharSpan(_INVERSE[span.kind], span.text))
        spans.extend(_order_run(run))
        return CharDiffModel(tuple(spans))

    def to_list(self) -> List[Dict[str, Any]]:
        """Convert to a list of span dictionaries"""
        return [s.to_dict() for s in self.spans]


_INVERSE = {
    SpanKind.INSERTED: SpanKind.DELETED,
    SpanKind.DELETED: SpanKind.INSERTED,
}


def _order_run(run: List[CharSpan]) -> List[CharSpan]:
    return sorted(run, key=lambda s: s.kind is SpanKind.INSERTED)


class CharDiffAdapter(Protocol):
    """Computes a fine-grained diff between two strings"""

    def compute(self, old: str, new: str, ignore_whitespace: bool) -> CharDiffModel:
        ...


class DifflibCharDiffAdapter:
    """
    CharDiffAdapter built on difflib.SequenceMatcher.

    The alignment does not depend on argument order: the pair is always
    matched with the lesser string first and the model inverted when the
    arguments came the other way, so compute(a, b).inverted() equals
    compute(b, a).

    With ignore_whitespace, whitespace never anchors the alignment and a
    change that only adds, removes or replaces whitespace is reported as an
    EQUAL span (keeping the old whitespace in CharSpan.original).
    """

    def compute(self, old: str, new: str, ignore_whitespace: bool) -> CharDiffModel:
        if new < old:
            return self._compute(new, old, ignore_whitespace).inverted()
        return self._compute(old, new, ignore_whitespace)

    def _compute(self, old: str, new: str, ignore_whitespace: bool) -> CharDiffModel:
        isjunk = str.isspace if ignore_whitespace else None
        matcher = difflib.SequenceMatcher(isjunk, old, new, autojunk=False)
        spans: List[CharSpan] = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            removed, added = old[i1:i2], new[j1:j2]
            if tag == "equal":
                spans.append(CharSpan(SpanKind.EQUAL, removed))
                continue
            if ignore_whitespace and not removed.strip() and not added.strip():
                spans.append(CharSpan(SpanKind.EQUAL, added, removed))
                continue
            if removed:
                spans.append(CharSpan(SpanKind.DELETED, removed))
            if added:
                spans.append(CharSpan(SpanKind.INSERTED, added))
        return CharDiffModel(tuple(spans))


DEFAULT_CHAR_DIFF_ADAPTER = DifflibCharDiffAdapter()
