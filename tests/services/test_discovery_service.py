"""Tests for the discovery feed."""

import random

import pytest

from campusknot.services.discovery_service import compute_match_percent, get_candidates
from campusknot.utils.database import MatchDB, SwipeDB


class TestComputeMatchPercent:
    def test_shared_interests(self):
        percent, shared = compute_match_percent(["music", "chess", "travel", "food"], ["chess", "music", "art"])
        # 2 / 4 * 100 + 40
        assert percent == 90
        assert shared == ["chess", "music"]

    def test_half_of_own_interests_shared(self):
        assert compute_match_percent(["Music", "Art"], ["Music", "Chess"]) == (90, ["Music"])

    def test_rounds_half_up(self):
        # 1 / 8 * 100 + 40 = 52.5
        own = [f"i{n}" for n in range(8)]
        assert compute_match_percent(own, ["i0"])[0] == 53

    def test_rounds_down_below_half(self):
        # 1 / 3 * 100 + 40 = 73.33
        assert compute_match_percent(["a", "b", "c"], ["a"])[0] == 73

    def test_capped_at_99(self):
        assert compute_match_percent(["a", "b"], ["a", "b"])[0] == 99

    def test_no_shared_interests(self):
        assert compute_match_percent(["a"], ["b"]) == (40, [])

    def test_without_own_interests_is_random_in_range(self):
        rng = random.Random(7)
        for _ in range(200):
            percent, shared = compute_match_percent([], ["a"], rng)
            assert 60 <= percent < 90
            assert shared == []


class TestGetCandidates:
    def test_excludes_self_swiped_matched_and_inactive(self, session, make_user):
        viewer = make_user()
        fresh = make_user()
        liked = make_user()
        passed = make_user()
        matched = make_user()
        make_user(is_active=False)

        low, high = sorted((viewer.id, matched.id))
        session.add_all(
            [
                SwipeDB(user_id=viewer.id, target_id=liked.id, action="like"),
                SwipeDB(user_id=viewer.id, target_id=passed.id, action="pass"),
                MatchDB(user1_id=low, user2_id=high),
            ]
        )
        session.commit()

        candidates = get_candidates(session, viewer)

        assert [candidate.id for candidate in candidates] == [fresh.id]

    def test_someone_who_swiped_on_viewer_still_appears(self, session, make_user):
        viewer = make_user()
        admirer = make_user()
        session.add(SwipeDB(user_id=admirer.id, target_id=viewer.id, action="like"))
        session.commit()

        assert [candidate.id for candidate in get_candidates(session, viewer)] == [admirer.id]

    @pytest.mark.parametrize(
        "show_me, expected",
        [("male", {"male"}), ("female", {"female"}), ("all", {"male", "female", "other"})],
    )
    def test_show_me_filters_gender(self, session, make_user, show_me, expected):
        viewer = make_user(show_me=show_me)
        make_user(gender="male")
        make_user(gender="female")
        make_user(gender="other")

        genders = {candidate.gender for candidate in get_candidates(session, viewer)}

        assert genders == expected

    def test_limit(self, session, make_user):
        viewer = make_user()
        for _ in range(5):
            make_user()

        assert len(get_candidates(session, viewer, limit=3)) == 3
        assert get_candidates(session, viewer, limit=0) == []
        assert len(get_candidates(session, viewer)) == 5

    def test_affinity_attached(self, session, make_user):
        viewer = make_user(interests=["music", "chess", "travel", "food"])
        make_user(interests=["chess", "music", "art"])

        (candidate,) = get_candidates(session, viewer)

        assert candidate.match_percent == 90
        assert candidate.shared_interests == ["chess", "music"]
        assert "email" not in candidate.model_dump()
