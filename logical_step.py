from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from config import SUB_STEP_INDENT

Cell = Tuple[int, int]
Link = Tuple[int, int]


def _chain_links(source: Sequence[int]) -> Tuple[Tuple[Link, ...], Tuple[Link, ...]]:
    """Split an alternating inference chain into (strong, weak) links.

    Consecutive pairs alternate strong, weak, strong, ... starting from the
    first pair.
    """
    strong: List[Link] = []
    weak: List[Link] = []
    is_strong = False
    prev: Optional[int] = None
    for cur in source:
        if prev is not None:
            (strong if is_strong else weak).append((prev, cur))
        prev = cur
        is_strong = not is_strong
    return tuple(strong), tuple(weak)


@dataclass(frozen=True)
class LogicalStep:
    """One deduction, ready to be shown to a person."""

    desc: str
    highlight_cells: Tuple[Cell, ...] = ()
    source_candidates: Tuple[int, ...] = ()
    elim_candidates: Tuple[int, ...] = ()
    strong_links: Tuple[Link, ...] = ()
    weak_links: Tuple[Link, ...] = ()
    sub_steps: Tuple["LogicalStep", ...] = ()
    is_single: bool = False

    @classmethod
    def from_candidates(
        cls,
        desc: str,
        source: Optional[Iterable[int]] = None,
        elims: Optional[Iterable[int]] = None,
        source_is_aic: bool = False,
        is_single: bool = False,
        sub_steps: Optional[Iterable["LogicalStep"]] = None,
    ) -> "LogicalStep":
        source_candidates = tuple(source or ())
        strong: Tuple[Link, ...] = ()
        weak: Tuple[Link, ...] = ()
        if source_is_aic:
            strong, weak = _chain_links(source_candidates)
        return cls(
            desc=desc,
            source_candidates=source_candidates,
            elim_candidates=tuple(elims or ()),
            strong_links=strong,
            weak_links=weak,
            sub_steps=tuple(sub_steps or ()),
            is_single=is_single,
        )

    @classmethod
    def for_cells(cls, desc: str, cells: Iterable[Cell]) -> "LogicalStep":
        return cls(desc=desc, highlight_cells=tuple(cells))

    @classmethod
    def for_cell(cls, desc: str, cell: Cell) -> "LogicalStep":
        return cls(desc=desc, highlight_cells=(cell,))

    def with_prefix(self, prefix: str) -> "LogicalStep":
        return replace(self, desc=prefix + self.desc)

    def __str__(self) -> str:
        if not self.sub_steps:
            return self.desc
        lines = [self.desc]
        for step in self.sub_steps:
            for line in str(step).splitlines():
                lines.append(SUB_STEP_INDENT + line)
        return "\n".join(lines)


def describe_steps(steps: Iterable[LogicalStep]) -> str:
    return "\n".join(str(step) for step in steps)
