# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for FilterRegistry ordering and registration."""

from __future__ import annotations

from redirectguard.filters import FilterRegistry


class TestApplyFilters:
    def test_no_filters_returns_value(self):
        assert FilterRegistry().apply_filters("redirect", "/a") == "/a"

    def test_value_threaded_through_chain(self):
        filters = FilterRegistry()
        filters.add_filter("redirect", lambda v: v + "b")
        filters.add_filter("redirect", lambda v: v + "c")
        assert filters.apply_filters("redirect", "a") == "abc"

    def test_priority_order(self):
        filters = FilterRegistry()
        filters.add_filter("h", lambda v: v + "late", priority=20)
        filters.add_filter("h", lambda v: v + "early", priority=1)
        filters.add_filter("h", lambda v: v + "mid")
        assert filters.apply_filters("h", "") == "earlymidlate"

    def test_extra_args_passed(self):
        filters = FilterRegistry()
        seen = []
        filters.add_filter("redirect", lambda v, status: seen.append(status) or v)
        filters.apply_filters("redirect", "/a", 301)
        assert seen == [301]

    def test_hooks_are_independent(self):
        filters = FilterRegistry()
        filters.add_filter("a", lambda v: v * 2)
        assert filters.apply_filters("b", 3) == 3


class TestRegistration:
    def test_has_filter(self):
        filters = FilterRegistry()

        def cb(v):
            return v

        assert not filters.has_filter("h")
        filters.add_filter("h", cb)
        assert filters.has_filter("h")
        assert filters.has_filter("h", cb)
        assert not filters.has_filter("h", lambda v: v)

    def test_remove_filter(self):
        filters = FilterRegistry()

        def cb(v):
            return v + 1

        filters.add_filter("h", cb)
        assert filters.remove_filter("h", cb) is True
        assert filters.apply_filters("h", 1) == 1
        assert not filters.has_filter("h")

    def test_remove_with_priority_mismatch(self):
        filters = FilterRegistry()

        def cb(v):
            return v

        filters.add_filter("h", cb, priority=5)
        assert filters.remove_filter("h", cb, priority=10) is False
        assert filters.has_filter("h", cb)

    def test_remove_unknown(self):
        assert FilterRegistry().remove_filter("h", print) is False

    def test_bound_method_removal(self):
        class Observer:
            def on(self, v):
                return v

        obs = Observer()
        filters = FilterRegistry()
        filters.add_filter("h", obs.on)
        assert filters.remove_filter("h", obs.on) is True
