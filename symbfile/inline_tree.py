"""Inline function trees flattened into depth-annotated ranges.

A ``RangeV1`` record does not name its parent. Parents are recovered from
address containment plus depth: the parent of a range at depth ``d`` is the
range at depth ``d - 1`` whose interval contains it. For example::

    Depth
    2 |   [ malloc ][ strcpy ]
    1 |  [ strdup             ] [ puts ] [ free ]
    0 | [ main                                       ]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .records import Range


class InlineScope:
    """Ranges that are still open while a stream is read in order.

    Holds at most one range per depth, so memory is bounded by the inline
    depth rather than by the number of records.
    """

    def __init__(self) -> None:
        self._open: List[Optional[Range]] = []

    def __len__(self) -> int:
        return len(self._open)

    def reset(self) -> None:
        self._open.clear()

    def parent_of(self, elf_va: int, length: int, depth: int) -> Optional[Range]:
        """Return the open range enclosing ``[elf_va, elf_va + length)`` one level up."""

        if depth == 0 or depth > len(self._open):
            return None
        candidate = self._open[depth - 1]
        if candidate is None:
            return None
        if candidate.elf_va <= elf_va and elf_va + length <= candidate.end:
            return candidate
        return None

    def push(self, record: Range) -> None:
        depth = record.depth
        del self._open[depth:]
        while len(self._open) < depth:
            self._open.append(None)
        self._open.append(record)


@dataclass
class InlineNode:
    """Range plus the ranges directly inlined into it."""

    range: Range
    children: List["InlineNode"] = field(default_factory=list)

    def walk(self) -> Iterable["InlineNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def stack_at(self, address: int) -> List[Range]:
        """Return the inline stack at *address*, outermost first."""

        if not self.range.elf_va <= address < self.range.end:
            return []
        stack = [self.range]
        for child in self.children:
            nested = child.stack_at(address)
            if nested:
                stack.extend(nested)
                break
        return stack


def build_inline_tree(ranges: Iterable[Range]) -> List[InlineNode]:
    """Rebuild inline trees from ranges given in any order.

    Ranges whose parent cannot be found become roots of their own.
    """

    ordered = sorted(ranges, key=lambda item: (item.elf_va, item.depth, -item.length))
    roots: List[InlineNode] = []
    stack: List[InlineNode] = []
    for record in ordered:
        node = InlineNode(record)
        while stack and (
            stack[-1].range.depth >= record.depth or not stack[-1].range.contains(record)
        ):
            stack.pop()
        if stack and stack[-1].range.depth == record.depth - 1:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return roots


__all__ = ["InlineNode", "InlineScope", "build_inline_tree"]
