import unittest
from datetime import date

from raceform.aggregation.engine import aggregate
from raceform.timeline.aligner import AlignedSeries, align, fill_series
from raceform.timeline.palette import COLOR_PALETTE, series_color, surface_color


def day(n):
    return f"2024-01-{n:02d}"


def horses(runs_by_horse, prices=None):
    """runs_by_horse: {horse_id: {day_number: rating}} -> aggregated horses."""
    rows = []
    for hid, runs in runs_by_horse.items():
        for n, rating in runs.items():
            rows.append({"horse_id": hid, "horse_name": f"Horse {hid}", "race_date": day(n), "rating": rating})
    meta = [{"horse_id": hid, "betfair_win_sp": p} for hid, p in (prices or {}).items()]
    return aggregate(rows, meta)


class TestFillSeries(unittest.TestCase):
    def test_edges_and_interpolation(self):
        values, real = fill_series([None, 4, None, None, 10, None])
        self.assertEqual(values, [4.0, 4.0, 6.0, 8.0, 10.0, 10.0])
        self.assertEqual(real, [1, 4])

    def test_no_real_values(self):
        self.assertEqual(fill_series([None, None]), ([0.0, 0.0], []))


class TestAlign(unittest.TestCase):
    def test_interpolation_between_real_points(self):
        es = horses({"a": {1: 10, 5: 20}, "b": {2: 50, 3: 50, 4: 50}}, {"a": 2.0, "b": 3.0})
        res = align(es, "rating")
        self.assertEqual(len(res.axis), 5)
        a = res.series["a"]
        self.assertEqual(a.real_indices, (0, 4))
        self.assertEqual(a.values[2], 15)
        self.assertEqual(a.values, (10.0, 12.5, 15.0, 17.5, 20.0))
        b = res.series["b"]
        self.assertEqual(b.values, (50.0,) * 5)
        self.assertEqual(b.real_indices, (1, 2, 3))

    def test_boundary_fill(self):
        es = horses({"a": {4: 8}, "b": {n: 60 for n in range(1, 7)}}, {"a": 1.5, "b": 2.0})
        res = align(es, "rating")
        self.assertEqual(len(res.axis), 6)
        self.assertEqual(res.series["a"].values, (8.0,) * 6)
        self.assertEqual(res.series["a"].real_indices, (3,))
        self.assertEqual(res.series["a"].real_points(), [(3, 8.0)])

    def test_axis_strictly_ascending_and_windowed(self):
        es = horses({
            "a": {n: 70 for n in (1, 3, 5, 7, 9, 11)},
            "b": {n: 80 for n in (2, 4, 6, 8, 10, 12, 11)},
        })
        res = align(es, "rating", axis_window=10)
        dates = [p.date for p in res.axis]
        self.assertEqual(len(dates), 10)
        self.assertTrue(all(d1 < d2 for d1, d2 in zip(dates, dates[1:])))
        self.assertEqual(dates[0], date(2024, 1, 3))
        self.assertEqual(dates[-1], date(2024, 1, 12))
        self.assertEqual(res.labels[0], "3/1")

    def test_history_window_limits_real_points(self):
        es = horses({"a": {n: 50 + n for n in range(1, 11)}})
        res = align(es, "rating", history_window=3)
        self.assertEqual(len(res.axis), 3)
        self.assertEqual(res.series["a"].values, (58.0, 59.0, 60.0))

    def test_zero_and_negative_readings_are_ignored(self):
        es = horses({"a": {1: 0, 2: 75, 3: -4}})
        res = align(es, "rating")
        self.assertEqual(len(res.axis), 1)
        self.assertEqual(res.axis[0].date, date(2024, 1, 2))
        self.assertEqual(res.series["a"].real_indices, (0,))

    def test_old_history_outside_axis_is_zero_filled(self):
        es = horses({"old": {1: 90}, "new": {n: 60 for n in range(2, 12)}}, {"old": 1.0, "new": 2.0})
        res = align(es, "rating", axis_window=5)
        self.assertEqual(res.series["old"].values, (0.0,) * 5)
        self.assertEqual(res.series["old"].real_indices, ())

    def test_no_data_degenerates(self):
        res = align([], "rating")
        self.assertEqual(len(res.axis), 1)
        self.assertIsNone(res.axis[0].date)
        self.assertEqual(res.labels, [""])
        self.assertEqual(res.series, {})

        es = horses({"a": {1: 0}, "b": {}}, {"b": 2.0})
        res = align(es, "speed_figure")
        self.assertEqual(len(res.axis), 1)
        for s in res.series.values():
            self.assertEqual(s.values, (0.0,))
            self.assertEqual(s.real_indices, ())

    def test_cap_keeps_cheapest_in_price_order(self):
        prices = {f"h{i}": float(10 - i) for i in range(9)}  # h8 cheapest
        es = horses({hid: {1: 50} for hid in prices}, prices)
        res = align(es, "rating", max_entities=6)
        self.assertEqual(list(res.series), ["h8", "h7", "h6", "h5", "h4", "h3"])

    def test_unpriced_last_and_ties_keep_order(self):
        es = horses({"x": {1: 50}, "y": {1: 50}, "z": {1: 50}, "w": {1: 50}}, {"y": 3.0, "z": 3.0, "w": 2.0})
        res = align(es, "rating")
        self.assertEqual(list(res.series), ["w", "y", "z", "x"])

    def test_colors_follow_rank_in_selection(self):
        es = horses({"a": {1: 50}, "b": {1: 60}}, {"a": 1.0, "b": 2.0})
        both = align(es, "rating")
        self.assertEqual(both.series["a"].color, COLOR_PALETTE[0])
        self.assertEqual(both.series["b"].color, COLOR_PALETTE[1])
        only_b = align(es, "rating", selected=["b"])
        self.assertEqual(list(only_b.series), ["b"])
        self.assertEqual(only_b.series["b"].color, COLOR_PALETTE[0])

    def test_selected_toggle_map_with_string_keys(self):
        es = horses({1: {1: 50}, 2: {1: 60}, 3: {1: 70}})
        res = align(es, "rating", selected={"1": True, "2": False, "3": True})
        self.assertEqual(sorted(res.series), [1, 3])

    def test_first_run_on_a_day_wins(self):
        rows = [
            {"horse_id": "a", "race_date": "2024-01-01T12:00:00", "rating": 40},
            {"horse_id": "a", "race_date": "2024-01-01T18:00:00", "rating": 90},
        ]
        res = align(aggregate(rows), "rating")
        self.assertEqual(len(res.axis), 1)
        self.assertEqual(res.series["a"].values, (40.0,))

    def test_offset_timestamp_keeps_written_day(self):
        rows = [
            {"horse_id": "a", "race_date": "2024-03-05T00:30:00+01:00", "rating": 70},
            {"horse_id": "b", "race_date": "2024-03-05", "rating": 80},
        ]
        res = align(aggregate(rows), "rating")
        self.assertEqual(res.labels, ["5/3"])
        self.assertEqual(res.axis[0].date, date(2024, 3, 5))
        self.assertEqual(res.series["a"].real_indices, (0,))
        self.assertEqual(res.series["b"].real_indices, (0,))

    def test_selected_ignores_unhashable_entries(self):
        es = horses({1: {1: 50}, 2: {1: 60}})
        res = align(es, "rating", selected=[[1], {"id": 2}, 2])
        self.assertEqual(list(res.series), [2])

    def test_idempotent(self):
        es = horses({"a": {1: 10, 4: 30}, "b": {2: 5, 3: 7}}, {"a": 2.0})
        self.assertEqual(align(es, "rating"), align(es, "rating"))
        self.assertEqual(align(es, "rating").as_dict(), align(es, "rating").as_dict())

    def test_contract_violations(self):
        es = horses({"a": {1: 10}})
        with self.assertRaises(ValueError):
            align(es, "rating", history_window=-1)
        with self.assertRaises(ValueError):
            align(es, "rating", max_entities=-1)
        with self.assertRaises(ValueError):
            align(es, "rating", axis_window=0)
        with self.assertRaises(ValueError):
            align(es, "weight")
        with self.assertRaises(ValueError):
            align(es, "rating", max_entities="6")

    def test_as_dict_shape(self):
        es = horses({"a": {1: 10, 3: 30}}, {"a": 2.0})
        d = align(es, "rating").as_dict()
        self.assertEqual(d["metric"], "rating")
        self.assertEqual(d["labels"], ["1/1", "3/1"])
        self.assertEqual(d["axis"][0]["date"], "2024-01-01")
        self.assertEqual(d["series"][0]["values"], [10.0, 30.0])
        self.assertEqual(d["series"][0]["real_indices"], [0, 1])


class TestPalette(unittest.TestCase):
    def test_series_color_wraps(self):
        self.assertEqual(series_color(len(COLOR_PALETTE)), COLOR_PALETTE[0])

    def test_surface_color(self):
        self.assertEqual(surface_color(" Turf "), "#22c55e")
        self.assertEqual(surface_color("Polytrack"), "#795548")
        self.assertEqual(surface_color(None), "#000000")
        self.assertEqual(surface_color("dirt"), "#000000")

    def test_legend_label(self):
        s = AlignedSeries(entity_id=1, display_name="Supercalifragilistic", color="#000", values=(0.0,))
        self.assertEqual(s.legend_label, "Supercalifra...")
        short = AlignedSeries(entity_id=2, display_name="Short", color="#000", values=(0.0,))
        self.assertEqual(short.legend_label, "Short")


if __name__ == "__main__":
    unittest.main()
