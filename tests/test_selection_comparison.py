from immunization.comparison import LINE_COLORS, compute_comparison
from immunization.selection import SelectionStore
from tests.conftest import make_record


def test_add_appends_in_order_and_rejects_duplicates_and_blanks():
    store = SelectionStore()
    assert store.add("Chad")
    assert store.add("Austria")
    assert not store.add("Chad")
    assert not store.add("   ")
    assert not store.add("")
    assert store.names == ("Chad", "Austria")


def test_remove_at_and_clear():
    store = SelectionStore()
    for name in ["A", "B", "C"]:
        store.add(name)
    assert store.remove_at(1)
    assert store.names == ("A", "C")
    assert not store.remove_at(5)
    assert not store.remove_at(-1)
    store.clear()
    assert store.names == ()
    store.clear()
    assert len(store) == 0


def test_listeners_are_notified_on_every_change():
    store = SelectionStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.add("A")
    store.add("A")
    store.add("B")
    store.remove_at(0)
    store.clear()
    assert seen == [("A",), ("A", "B"), ("B",), ()]

    unsubscribe()
    store.add("C")
    assert seen[-1] == ()


def test_comparison_series_and_shared_years(sample_records):
    view = compute_comparison(sample_records, ["Chad", "Landia"])
    assert view.years == [2022, 2023, 2024]
    assert [s.country_name for s in view.series] == ["Chad", "Landia"]
    assert [s.color for s in view.series] == LINE_COLORS[:2]
    assert [r.year for r in view.series[0].records] == [2022, 2024]
    assert view.table == [
        {"country_name": "Chad", "2022": "45.0%", "2023": "-", "2024": "52.5%"},
        {"country_name": "Landia", "2022": "60.0%", "2023": "80.0%", "2024": "-"},
    ]


def test_comparison_sorts_each_history_by_year():
    records = [make_record("X", 70.0, 2024), make_record("X", 50.0, 2022), make_record("X", 60.0, 2023)]
    view = compute_comparison(records, ["X"])
    assert [r.rate for r in view.series[0].records] == [50.0, 60.0, 70.0]


def test_comparison_empty_selection():
    view = compute_comparison([make_record("X", 70.0, 2024)], [])
    assert view.is_empty
    assert view.years == [] and view.series == []
