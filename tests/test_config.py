import pytest

from symbfile.config import ReaderOptions, WriterConfig, available_modes, get_writer_config
from symbfile.resource_limits import DecodeBudget, ResourceBudgetExceeded


def test_default_mode_is_balanced() -> None:
    config = get_writer_config(None)
    assert config.mode == "balanced"
    assert config.interning_enabled
    assert config.address_mode == "delta"


def test_available_modes_describe_every_preset() -> None:
    modes = available_modes()
    assert set(modes) == {"balanced", "compact", "literal", "debug"}
    assert all(modes.values())


def test_unknown_mode() -> None:
    with pytest.raises(ValueError):
        get_writer_config("turbo")


def test_presets_differ_in_policy() -> None:
    assert not get_writer_config("literal").interning_enabled
    assert get_writer_config("compact").intern_threshold == 1
    assert get_writer_config("debug").address_mode == "absolute"


@pytest.mark.parametrize(
    "changes",
    [
        {"intern_threshold": -1},
        {"table_flush_batch": 0},
        {"max_table_size": 0},
        {"address_mode": "relative"},
    ],
)
def test_invalid_writer_options(changes) -> None:
    with pytest.raises(ValueError):
        get_writer_config("balanced").with_options(**changes)


def test_with_options_returns_a_copy() -> None:
    base = get_writer_config("balanced")
    tuned = base.with_options(table_flush_batch=8)
    assert tuned.table_flush_batch == 8
    assert base.table_flush_batch == 64
    assert isinstance(tuned, WriterConfig)


def test_reader_options_defaults() -> None:
    options = ReaderOptions()
    assert options.require_header
    assert not options.allow_delta_without_base
    assert options.budget == DecodeBudget()


def test_budget_limits() -> None:
    budget = DecodeBudget(max_payload_bytes=10, max_line_table_rows=2, max_inline_depth=1)
    budget.ensure_payload_bytes(10)
    with pytest.raises(ResourceBudgetExceeded):
        budget.ensure_payload_bytes(11)
    with pytest.raises(ResourceBudgetExceeded):
        budget.ensure_line_table(3)
    with pytest.raises(ResourceBudgetExceeded):
        budget.ensure_inline_depth(2)
