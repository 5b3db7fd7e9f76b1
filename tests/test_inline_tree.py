from symbfile.inline_tree import InlineScope, build_inline_tree
from symbfile.records import Range


def _range(func: str, start: int, length: int, depth: int) -> Range:
    return Range(elf_va=start, length=length, func=func, file=f"{func}.c", depth=depth)


MAIN = _range("main", 0x100, 0x100, 0)
STRDUP = _range("strdup", 0x110, 0x40, 1)
MALLOC = _range("malloc", 0x110, 0x10, 2)
STRCPY = _range("strcpy", 0x120, 0x20, 2)
PUTS = _range("puts", 0x160, 0x10, 1)
FREE = _range("free", 0x180, 0x10, 1)
EXAMPLE = [MAIN, STRDUP, MALLOC, STRCPY, PUTS, FREE]


def _shape(node):
    return (node.range.func, [_shape(child) for child in node.children])


def test_tree_is_rebuilt_from_containment_and_depth() -> None:
    (root,) = build_inline_tree(EXAMPLE)
    assert _shape(root) == (
        "main",
        [("strdup", [("malloc", []), ("strcpy", [])]), ("puts", []), ("free", [])],
    )


def test_input_order_does_not_matter() -> None:
    roots = build_inline_tree(reversed(EXAMPLE))
    assert [_shape(root) for root in roots] == [_shape(build_inline_tree(EXAMPLE)[0])]


def test_stack_at_address() -> None:
    (root,) = build_inline_tree(EXAMPLE)
    assert [r.func for r in root.stack_at(0x125)] == ["main", "strdup", "strcpy"]
    assert [r.func for r in root.stack_at(0x150)] == ["main"]
    assert root.stack_at(0x300) == []
    assert [node.range.func for node in root.walk()] == [
        "main",
        "strdup",
        "malloc",
        "strcpy",
        "puts",
        "free",
    ]


def test_orphans_become_roots() -> None:
    orphan = _range("orphan", 0x400, 0x10, 1)
    roots = build_inline_tree([MAIN, orphan])
    assert [root.range.func for root in roots] == ["main", "orphan"]


def test_scope_tracks_one_open_range_per_depth() -> None:
    scope = InlineScope()
    for record in (MAIN, STRDUP, MALLOC):
        scope.push(record)
    assert len(scope) == 3
    assert scope.parent_of(0x120, 0x20, 2) is STRDUP
    scope.push(PUTS)
    assert len(scope) == 2
    assert scope.parent_of(0x160, 0x8, 2) is PUTS
    assert scope.parent_of(0x200, 0x8, 1) is None
    assert scope.parent_of(0x100, 0x8, 0) is None
    scope.reset()
    assert len(scope) == 0
