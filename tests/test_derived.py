"""Tests for combine, join, merge, latest and the identity memoizer."""

import gc

import pytest

from cellgraph import _anchor, cell, combine, join, latest, merge
from cellgraph.derived import memoize


class TestCombine:
    def test_combines_input_values(self):
        author = cell("Shakespeare")
        title = cell("Hamlet")
        book = combine([author, title], lambda a, t: {"author": a, "title": t})
        assert book.get() == {"author": "Shakespeare", "title": "Hamlet"}

        title.set("Macbeth")
        assert book.get() == {"author": "Shakespeare", "title": "Macbeth"}

        author.set("Kipling")
        title.set("The Jungle Book")
        assert book.get() == {"author": "Kipling", "title": "The Jungle Book"}

    def test_notifies_once_per_input_change(self):
        a = cell(1)
        b = cell(2)
        total = combine([a, b], lambda x, y: x + y)
        log = []
        total.subscribe(lambda new, old: log.append((new, old)))
        a.set(10)
        b.set(20)
        assert log == [(12, 3), (30, 12)]

    def test_no_notification_when_result_unchanged(self):
        o = cell(1)
        parity = o.select(lambda v: "odd" if v % 2 else "even")
        log = []
        parity.subscribe(lambda new, old: log.append(new))
        o.set(3)
        assert log == []
        o.set(4)
        assert log == ["even"]

    def test_listeners_called_as_few_as_possible(self):
        books = cell(["The Jungle Book", "Pride and Prejudice"])
        book1 = books.select(lambda it: it[0])
        book2 = books.select(lambda it: it[1])
        new_books = join(book1, book2)
        assert list(new_books.get()) == books.get()

        books.set(["Romeo and Juliet", "Hamlet"])
        assert list(new_books.get()) == books.get()

        received = []
        new_books.subscribe(lambda new, old: received.append(new))
        books.set(["The Jungle Book", "Pride and Prejudice"])
        assert received == [("The Jungle Book", "Pride and Prejudice")]

    def test_chained_derivations(self):
        o = cell(3)
        doubled = o.select(lambda v: v * 2)
        quadrupled = doubled.select(lambda v: v * 2)
        assert quadrupled.get() == 12

        log = []
        quadrupled.subscribe(lambda new, old: log.append(new))
        o.set(5)
        assert quadrupled.get() == 20
        assert log == [20]

    def test_exception_propagates_to_reader(self):
        o = cell(0)
        inverse = o.select(lambda v: 1 / v)
        with pytest.raises(ZeroDivisionError):
            inverse.get()
        o.set(4)
        assert inverse.get() == 0.25


class TestJoinMerge:
    def test_join(self):
        book1 = cell("The Jungle Book")
        book2 = cell("Pride and Prejudice")
        books = join(book1, book2)
        assert books.get() == ("The Jungle Book", "Pride and Prejudice")

        received = []
        books.subscribe(lambda new, old: received.append(new))

        book1.set("Romeo and Juliet")
        assert received == [("Romeo and Juliet", "Pride and Prejudice")]

        book2.set("Hamlet")
        assert received == [
            ("Romeo and Juliet", "Pride and Prejudice"),
            ("Romeo and Juliet", "Hamlet"),
        ]

    def test_merge(self):
        book1 = cell("The Jungle Book")
        book2 = cell("Pride and Prejudice")
        books = merge([book1, book2])
        assert books.get() == ["The Jungle Book", "Pride and Prejudice"]

        book1.set("Romeo and Juliet")
        book2.set("Hamlet")
        assert books.get() == ["Romeo and Juliet", "Hamlet"]


class TestLatest:
    def test_tracks_last_changed_input(self):
        book1 = cell("The Jungle Book")
        book2 = cell("Pride and Prejudice")
        latest_book = latest(book1, book2)
        assert latest_book.get() == "The Jungle Book"

        book1.set("Romeo and Juliet")
        assert latest_book.get() == "Romeo and Juliet"

        book2.set("Hamlet")
        assert latest_book.get() == "Hamlet"

    def test_attached(self):
        a = cell("a")
        b = cell("b")
        latest_value = latest(a, b)
        log = []
        latest_value.subscribe(lambda new, old: log.append(new))
        b.set("b2")
        a.set("a2")
        assert log == ["b2", "a2"]


class TestMemoize:
    def test_reuses_result_for_identical_args(self):
        calls = []

        def fn(*args):
            calls.append(args)
            return object()

        memoized = memoize(fn)
        key = object()
        first = memoized(key)
        assert memoized(key) is first
        assert len(calls) == 1

        assert memoized(object()) is not first
        assert len(calls) == 2

    def test_argument_count_change_recomputes(self):
        memoized = memoize(lambda *args: len(args))
        assert memoized(1) == 1
        assert memoized(1, 2) == 2

    def test_failed_call_is_not_remembered(self):
        calls = []

        def fn(v):
            calls.append(v)
            if len(calls) == 1:
                raise ValueError(v)
            return v

        memoized = memoize(fn)
        with pytest.raises(ValueError):
            memoized(1)
        assert memoized(1) == 1
        assert calls == [1, 1]


class TestLifetime:
    def test_unattached_derivation_is_collected(self):
        source = cell(1)
        derived = source.select(lambda v: v + 1)
        derived.get()
        derived_id = derived._id
        assert derived_id in _anchor.values

        del derived
        gc.collect()
        assert derived_id not in _anchor.values
        assert source.get() == 1

    def test_input_kept_alive_by_output(self):
        derived = cell(1).select(lambda v: v + 1)
        gc.collect()
        assert derived.get() == 2

    def test_subscribed_derivation_stays_live_without_reference(self):
        source = cell(1)
        log = []
        source.select(lambda v: v * 2).subscribe(lambda new, old: log.append(new))
        gc.collect()
        source.set(2)
        assert log == [4]
