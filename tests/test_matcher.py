"""Tests for nearest-time swing matching."""

import random

import pytest

from hitsync.devices.base import DeviceKind
from hitsync.reconcile.matcher import MatchedPair, match_swings, singleton_pairs

BLAST = DeviceKind.BLAST
HITTRAX = DeviceKind.HITTRAX


def pair_keys(pairs):
    return [
        (
            pair.primary.row_id if pair.primary else None,
            pair.secondary.row_id if pair.secondary else None,
        )
        for pair in pairs
    ]


class TestGreedyMatching:

    def test_nearest_within_window(self, swing_factory):
        a = [swing_factory(BLAST, "a1", 0)]
        b = [swing_factory(HITTRAX, "b1", 10), swing_factory(HITTRAX, "b2", 3.25)]

        pairs = match_swings(a, b)

        assert pair_keys(pairs) == [("a1", "b2"), (None, "b1")]
        assert pairs[0].is_paired
        assert pairs[0].time_diff_seconds == pytest.approx(3.25)
        assert pairs[1].time_diff_seconds == 0.0

    def test_first_come_claims_candidate(self, swing_factory):
        a = [swing_factory(BLAST, "a10", 10), swing_factory(BLAST, "a12", 12)]
        b = [swing_factory(HITTRAX, "b11", 11)]

        pairs = match_swings(a, b, window_seconds=3)

        assert pair_keys(pairs) == [("a10", "b11"), ("a12", None)]

    def test_greedy_is_not_globally_optimal(self, swing_factory):
        a = [swing_factory(BLAST, "a10", 10), swing_factory(BLAST, "a12", 12)]
        b = [swing_factory(HITTRAX, "b", 11.9)]

        pairs = match_swings(a, b, window_seconds=3)

        # a12 is closer, but a10 comes first in time order
        assert pair_keys(pairs) == [("a10", "b"), ("a12", None)]

    def test_tie_goes_to_earlier_candidate(self, swing_factory):
        a = [swing_factory(BLAST, "a", 10)]
        b = [swing_factory(HITTRAX, "late", 11), swing_factory(HITTRAX, "early", 9)]

        pairs = match_swings(a, b)

        assert pair_keys(pairs) == [("a", "early"), (None, "late")]

    def test_window_boundary_is_inclusive(self, swing_factory):
        a = [swing_factory(BLAST, "a", 0)]

        inside = match_swings(a, [swing_factory(HITTRAX, "b", 7.0)])
        outside = match_swings(a, [swing_factory(HITTRAX, "b", 7.001)])

        assert pair_keys(inside) == [("a", "b")]
        assert pair_keys(outside) == [("a", None), (None, "b")]

    def test_zero_window_matches_identical_instants_only(self, swing_factory):
        a = [swing_factory(BLAST, "a", 5)]
        b = [swing_factory(HITTRAX, "b1", 5.001), swing_factory(HITTRAX, "b2", 5)]

        pairs = match_swings(a, b, window_seconds=0)

        assert pair_keys(pairs) == [("a", "b2"), (None, "b1")]

    def test_unsorted_input(self, swing_factory):
        a = [swing_factory(BLAST, "a2", 100), swing_factory(BLAST, "a1", 0)]
        b = [swing_factory(HITTRAX, "b2", 101), swing_factory(HITTRAX, "b1", 1)]

        assert pair_keys(match_swings(a, b)) == [("a1", "b1"), ("a2", "b2")]

    def test_negative_window_rejected(self, swing_factory):
        with pytest.raises(ValueError):
            match_swings([swing_factory(BLAST, "a", 0)], [], window_seconds=-1)

    def test_empty_streams(self, swing_factory):
        assert match_swings([], []) == []
        assert pair_keys(match_swings([swing_factory(BLAST, "a", 0)], [])) == [("a", None)]
        assert pair_keys(match_swings([], [swing_factory(HITTRAX, "b", 0)])) == [(None, "b")]


class TestMatchingInvariants:

    @pytest.fixture
    def streams(self, swing_factory):
        rng = random.Random(42)
        a = [swing_factory(BLAST, f"a{i}", rng.uniform(0, 600)) for i in range(60)]
        b = [swing_factory(HITTRAX, f"b{i}", rng.uniform(0, 600)) for i in range(50)]
        a.append(swing_factory(BLAST, "a-none", None))
        b.append(swing_factory(HITTRAX, "b-none", None))
        return a, b

    def test_deterministic(self, streams):
        a, b = streams
        assert pair_keys(match_swings(a, b)) == pair_keys(match_swings(list(a), list(b)))

    def test_one_to_one(self, streams):
        a, b = streams
        pairs = match_swings(a, b)

        primaries = [p.primary.row_id for p in pairs if p.primary]
        secondaries = [p.secondary.row_id for p in pairs if p.secondary]
        assert len(primaries) == len(set(primaries))
        assert len(secondaries) == len(set(secondaries))

    def test_window_respected(self, streams):
        a, b = streams
        for pair in match_swings(a, b, window_seconds=2):
            if pair.is_paired:
                diff = abs(pair.primary.instant - pair.secondary.instant) / 1000.0
                assert diff <= 2
                assert pair.time_diff_seconds == pytest.approx(diff)

    def test_complete_and_unmatchable_excluded(self, streams):
        a, b = streams
        pairs = match_swings(a, b)

        primaries = {p.primary.row_id for p in pairs if p.primary}
        secondaries = {p.secondary.row_id for p in pairs if p.secondary}
        assert primaries == {s.row_id for s in a if s.instant is not None}
        assert secondaries == {s.row_id for s in b if s.instant is not None}
        assert "a-none" not in primaries
        assert "b-none" not in secondaries

    def test_same_as_nested_scan(self, streams):
        a, b = streams
        window = 4.0

        # Reference: plain nested scan over the sorted streams
        a_sorted = sorted((s for s in a if s.instant is not None), key=lambda s: s.instant)
        open_b = sorted((s for s in b if s.instant is not None), key=lambda s: s.instant)
        expected = []
        for a_swing in a_sorted:
            best = None
            for candidate in open_b:
                diff = abs(a_swing.instant - candidate.instant) / 1000.0
                if diff <= window and (best is None or diff < best[1]):
                    best = (candidate, diff)
            if best is None:
                expected.append((a_swing.row_id, None))
            else:
                open_b.remove(best[0])
                expected.append((a_swing.row_id, best[0].row_id))
        expected.extend((None, s.row_id) for s in open_b)

        assert pair_keys(match_swings(a, b, window_seconds=window)) == expected


class TestMatchedPair:

    def test_singletons(self, swing_factory):
        swings = [
            swing_factory(DeviceKind.FULLSWING, "f2", 20),
            swing_factory(DeviceKind.FULLSWING, "f1", 10),
            swing_factory(DeviceKind.FULLSWING, "f0", None),
        ]
        pairs = singleton_pairs(swings)

        assert pair_keys(pairs) == [("f1", None), ("f2", None)]
        assert not any(p.is_paired for p in pairs)

    def test_swings_and_to_dict(self, swing_factory):
        pair = MatchedPair(
            primary=swing_factory(BLAST, "a", 0),
            secondary=swing_factory(HITTRAX, "b", 1.5),
            time_diff_seconds=1.5,
        )
        assert [s.row_id for s in pair.swings] == ["a", "b"]

        data = pair.to_dict()
        assert data["paired"] is True
        assert data["primary"]["id"] == "a"
        assert data["secondary"]["source"] == "hittrax"
        assert data["time_diff_seconds"] == 1.5
