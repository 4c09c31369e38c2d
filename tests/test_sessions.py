import pytest

from video2commerce.errors import MissingParametersError
from video2commerce.models import Decision
from video2commerce.sessions import ReviewSessions


def test_same_pair_returns_same_session(fake_store):
    sessions = ReviewSessions(fake_store)
    first = sessions.get(" https://youtu.be/abc ", "https://shop.example.com")
    first.mark_reviewed(["p1"], Decision.APPROVE)

    again = sessions.get("https://youtu.be/abc", "https://shop.example.com")

    assert again is first
    assert sessions.has_pending_changes()
    assert len(sessions) == 1


def test_different_store_gets_its_own_ledger(fake_store):
    sessions = ReviewSessions(fake_store)
    a = sessions.get("https://youtu.be/abc", "https://a.example.com")
    b = sessions.get("https://youtu.be/abc", "https://b.example.com")
    a.mark_reviewed(["p1"], Decision.APPROVE)

    assert b.ledger.is_empty()


@pytest.mark.parametrize("video, store", [("", "https://a.example.com"), ("https://youtu.be/x", "  ")])
def test_missing_parameters(fake_store, video, store):
    with pytest.raises(MissingParametersError):
        ReviewSessions(fake_store).get(video, store)


def test_drop_and_clear(fake_store):
    sessions = ReviewSessions(fake_store)
    sessions.get("https://youtu.be/a", "https://s.example.com")
    sessions.get("https://youtu.be/b", "https://s.example.com")

    sessions.drop("https://youtu.be/a", "https://s.example.com")
    assert len(sessions) == 1

    sessions.clear()
    assert len(sessions) == 0
    assert not sessions.has_pending_changes()
