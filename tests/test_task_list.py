"""Tests for checkbox-only edit detection."""

from docket.services.todos.task_list import normalize_tasks, only_task_toggles


def test_normalize_resets_checkboxes():
    assert normalize_tasks("- [x] a\n* [X] b\n1. [ ] c") == "- [ ] a\n* [ ] b\n1. [ ] c"


def test_toggle_only():
    assert only_task_toggles("- [ ] ship it @member", "- [x] ship it @member")
    assert only_task_toggles("1) [X] one\n2) [ ] two", "1) [ ] one\n2) [x] two")


def test_identical_text_is_not_a_toggle():
    assert not only_task_toggles("- [ ] a", "- [ ] a")


def test_missing_previous_is_not_a_toggle():
    assert not only_task_toggles(None, "- [x] a")


def test_whitespace_change_is_a_real_edit():
    assert not only_task_toggles("- [ ] a", "- [x]  a")


def test_text_change_alongside_toggle_is_a_real_edit():
    assert not only_task_toggles("- [ ] a", "- [x] a @member")


def test_brackets_outside_list_items_are_text():
    assert not only_task_toggles("see [ ] here", "see [x] here")
