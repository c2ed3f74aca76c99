"""Tests for gamereviews.ratings (RatingStore)."""

import pytest

from gamereviews.accounts import AccountStore
from gamereviews.db import Database
from gamereviews.errors import StorageError, ValidationError
from gamereviews.ratings import RATINGS_KEY, RatingStore


@pytest.fixture()
def db(tmp_path):
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture()
def accounts(db):
    store = AccountStore(db)
    store.register("bob", "b@x.com", "secret")
    store.register("alice", "a@x.com", "secret")
    return store


@pytest.fixture()
def ratings(db, accounts):
    return RatingStore(db, accounts)


def _rate_as(accounts, ratings, username, game_id, value, comment=""):
    accounts.login(username, "secret")
    return ratings.add_rating(game_id, game_id.title(), value, comment)


class TestAddRating:
    def test_requires_login(self, ratings, db):
        assert ratings.add_rating("zelda", "Zelda", 5, "great") is False
        assert ratings.list_ratings("zelda") == []
        assert db.get_json(RATINGS_KEY) is None

    def test_rejected_after_logout_leaves_mapping_unchanged(self, accounts, ratings, db):
        _rate_as(accounts, ratings, "bob", "zelda", 4)
        before = db.get_json(RATINGS_KEY)
        accounts.logout()
        assert ratings.add_rating("zelda", "Zelda", 1) is False
        assert db.get_json(RATINGS_KEY) == before

    def test_add_rating(self, accounts, ratings):
        assert _rate_as(accounts, ratings, "bob", "zelda", 5, "  great  ") is True
        [r] = ratings.list_ratings("zelda")
        assert r.username == "bob"
        assert r.rating == 5
        assert r.comment == "great"
        assert r.game_name == "Zelda"

    def test_upsert_replaces_existing(self, accounts, ratings):
        accounts.login("bob", "secret")
        ratings.add_rating("zelda", "Zelda", 5, "great")
        ratings.add_rating("zelda", "Zelda", 3, "ok")
        entries = [r for r in ratings.list_ratings("zelda") if r.username == "bob"]
        assert len(entries) == 1
        assert entries[0].rating == 3
        assert entries[0].comment == "ok"

    def test_upsert_keeps_list_position(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", 5)
        _rate_as(accounts, ratings, "alice", "zelda", 2)
        _rate_as(accounts, ratings, "bob", "zelda", 1)
        assert [r.username for r in ratings.list_ratings("zelda")] == ["bob", "alice"]

    def test_ratings_are_per_game(self, accounts, ratings):
        accounts.login("bob", "secret")
        ratings.add_rating("zelda", "Zelda", 5)
        ratings.add_rating("cyberpunk", "Cyberpunk", 2)
        assert ratings.rating_count("zelda") == 1
        assert ratings.rating_count("cyberpunk") == 1

    def test_string_value_is_coerced(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", "4")
        assert ratings.list_ratings("zelda")[0].rating == 4

    @pytest.mark.parametrize("value", [0, 6, "abc", "", None, True, 2.5])
    def test_invalid_value_rejected(self, accounts, ratings, value):
        accounts.login("bob", "secret")
        with pytest.raises(ValidationError):
            ratings.add_rating("zelda", "Zelda", value)
        assert ratings.list_ratings("zelda") == []

    def test_ratings_reloaded_by_new_store(self, accounts, ratings, db):
        _rate_as(accounts, ratings, "bob", "zelda", 5, "great")
        reloaded = RatingStore(db, accounts)
        [r] = reloaded.list_ratings("zelda")
        assert r.comment == "great"


class TestAverage:
    def test_no_ratings_is_zero(self, ratings):
        assert ratings.get_average_rating("zelda") == 0

    def test_average_of_three_and_five(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", 3)
        _rate_as(accounts, ratings, "alice", "zelda", 5)
        assert ratings.get_average_rating("zelda") == 4.0

    def test_average_rounds_half_up(self, accounts, ratings):
        accounts.register("carol", "c@x.com", "secret")
        accounts.register("dave", "d@x.com", "secret")
        for name, value in [("bob", 3), ("alice", 3), ("carol", 3), ("dave", 4)]:
            _rate_as(accounts, ratings, name, "zelda", value)
        assert ratings.get_average_rating("zelda") == 3.3


class TestQueries:
    def test_user_rating_when_logged_out(self, ratings):
        assert ratings.get_user_rating("zelda") is None

    def test_user_rating_not_yet_rated(self, accounts, ratings):
        accounts.login("bob", "secret")
        assert ratings.get_user_rating("zelda") is None

    def test_user_rating_is_for_current_user(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", 5)
        _rate_as(accounts, ratings, "alice", "zelda", 2)
        assert ratings.get_user_rating("zelda").rating == 2
        accounts.login("bob", "secret")
        assert ratings.get_user_rating("zelda").rating == 5

    def test_list_recent_latest_first(self, accounts, ratings):
        accounts.register("carol", "c@x.com", "secret")
        accounts.register("dave", "d@x.com", "secret")
        for name in ["bob", "alice", "carol", "dave"]:
            _rate_as(accounts, ratings, name, "zelda", 4)
        recent = ratings.list_recent("zelda", 3)
        assert [r.username for r in recent] == ["dave", "carol", "alice"]

    def test_list_recent_unknown_game(self, ratings):
        assert ratings.list_recent("zelda") == []

    def test_list_recent_zero(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", 4)
        assert ratings.list_recent("zelda", 0) == []

    def test_summary(self, accounts, ratings):
        _rate_as(accounts, ratings, "bob", "zelda", 3)
        _rate_as(accounts, ratings, "alice", "zelda", 5)
        summary = ratings.summary("zelda")
        assert summary.count == 2
        assert summary.average == 4.0
        assert summary.has_ratings is True
        assert [r.username for r in summary.recent] == ["alice", "bob"]


class TestStoredData:
    @pytest.mark.parametrize(
        "value",
        [
            [1, 2],
            {"zelda": [{"gameId": "zelda", "username": "bob"}]},
            {"zelda": [1]},
            {"zelda": [{"id": "1", "gameId": "zelda", "username": "bob", "rating": "x"}]},
        ],
    )
    def test_malformed_ratings_raise_storage_error(self, db, accounts, value):
        db.set_json(RATINGS_KEY, value)
        with pytest.raises(StorageError):
            RatingStore(db, accounts)


class TestFailedWrites:
    @pytest.fixture()
    def failing(self, db, monkeypatch):
        def enable():
            def boom(key, value):
                raise OSError("disk full")

            monkeypatch.setattr(db, "set_json", boom)

        return enable

    def test_new_game_rolled_back(self, accounts, ratings, failing):
        accounts.login("bob", "secret")
        failing()
        with pytest.raises(OSError):
            ratings.add_rating("zelda", "Zelda", 5)
        assert ratings.list_ratings("zelda") == []
        assert ratings.rating_count("zelda") == 0

    def test_existing_game_rolled_back(self, accounts, ratings, failing):
        _rate_as(accounts, ratings, "bob", "zelda", 5, "great")
        _rate_as(accounts, ratings, "alice", "zelda", 2)
        before = ratings.list_ratings("zelda")
        accounts.login("bob", "secret")
        failing()
        with pytest.raises(OSError):
            ratings.add_rating("zelda", "Zelda", 1, "changed my mind")
        assert ratings.list_ratings("zelda") == before
        assert ratings.get_user_rating("zelda").comment == "great"
