"""Window affinity matching."""

from helpers import make_tab, make_tabs

from tabber.windows import group_by_window, match_windows, window_score


def _two_windows(first: int, second: int, urls1, urls2):
    return make_tabs(*urls1, window_id=first) + make_tabs(*urls2, window_id=second, first_id=100)


class TestWindowScore:
    def test_points(self):
        a = [make_tab("x", index=0, active=True)]
        assert window_score(a, [make_tab("x", index=0, active=True)]) == 9
        assert window_score(a, [make_tab("x", index=1, active=True)]) == 6
        assert window_score(a, [make_tab("x", index=1, active=False)]) == 5
        assert window_score(a, [make_tab("y", index=0, active=True)]) == 0

    def test_counts_all_tab_pairs(self):
        # duplicates on both sides score for every pairing
        a = [make_tab("x", index=0), make_tab("x", index=1)]
        b = [make_tab("x", index=5), make_tab("x", index=6)]
        assert window_score(a, b) == 4 * 6

    def test_group_by_window_keeps_order(self):
        tabs = _two_windows(1, 2, ["a", "b"], ["c"])
        groups = group_by_window(tabs)
        assert list(groups) == [1, 2]
        assert [t.url for t in groups[1]] == ["a", "b"]


class TestMatchWindows:
    def test_windows_follow_their_tabs(self):
        source = _two_windows(1, 2, ["a", "b"], ["c", "d"])
        target = _two_windows(7, 8, ["c", "d"], ["a", "b"])
        match = match_windows(source, target)
        assert match.mapping == {7: 2, 8: 1}
        assert match.unmatched_targets == []
        assert match.pairs[0].score >= match.pairs[-1].score

    def test_extra_target_window_is_unmatched(self):
        source = make_tabs("a", "b", window_id=1)
        target = _two_windows(7, 8, ["a", "b"], ["c"])
        match = match_windows(source, target)
        assert match.mapping == {7: 1}
        assert match.unmatched_targets == [8]

    def test_each_window_used_once(self):
        source = _two_windows(1, 2, ["a"], ["z"])
        target = _two_windows(7, 8, ["a"], ["a"])
        match = match_windows(source, target)
        assert sorted(match.mapping) == [7, 8]
        assert sorted(match.mapping.values()) == [1, 2]

    def test_zero_scores_still_pair_up(self):
        source = make_tabs("a", window_id=1)
        target = make_tabs("b", window_id=7)
        match = match_windows(source, target)
        assert match.mapping == {7: 1}
        assert match.pairs[0].score == 0

    def test_equal_scores_keep_encounter_order(self):
        source = _two_windows(1, 2, ["q"], ["r"])
        target = make_tabs("s", window_id=7)
        match = match_windows(source, target)
        assert match.mapping == {7: 1}

    def test_empty_inputs(self):
        match = match_windows([], make_tabs("a", window_id=3))
        assert match.mapping == {}
        assert match.unmatched_targets == [3]
