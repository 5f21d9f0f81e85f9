from __future__ import annotations
import uuid
import pytest
from app.client.errors import HuntClientError
from app.client.voting import VotingSession
from app.schemas.submission import VotingSubmission


class FakeClient:
    def __init__(self, fail_with: dict | None = None):
        self.hunt_id = uuid.uuid4()
        self.votes: list[uuid.UUID] = []
        self.transitions: list[str] = []
        self.fail_with = fail_with or {}

    async def vote(self, submission_id, category="best"):
        error = self.fail_with.get(submission_id)
        if error:
            raise HuntClientError(409, "nope", error)
        self.votes.append(submission_id)
        return {}

    async def transition(self, target):
        self.transitions.append(target)


def _subs(prompt_ids, per_prompt=2):
    return [
        VotingSubmission(id=uuid.uuid4(), prompt_id=pid, player_id=uuid.uuid4(), display_name=f"P{i}")
        for pid in prompt_ids for i in range(per_prompt)
    ]


def test_prompts_without_photos_are_skipped():
    p1, p2, p3 = (uuid.uuid4() for _ in range(3))
    s = VotingSession(FakeClient(), [p3, p2, p1], _subs([p1, p3]))
    assert s.prompt_ids == [p3, p1]
    assert s.current_prompt == p3
    assert {c.prompt_id for c in s.candidates} == {p3}


def test_no_photos_at_all_is_already_done():
    s = VotingSession(FakeClient(), [uuid.uuid4()], [])
    assert s.done and s.current_prompt is None and s.candidates == []


@pytest.mark.asyncio
async def test_walk_requests_finish_once_on_the_last_prompt():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    client = FakeClient()
    s = VotingSession(client, [p1, p2], _subs([p1, p2]))

    await s.cast_vote(s.candidates[0].id)
    assert client.transitions == [] and s.current_prompt == p2
    await s.skip()

    assert client.transitions == ["finished"]
    assert s.done and s.resolved == {p1, p2}
    await s.skip()
    assert client.transitions == ["finished"]


@pytest.mark.asyncio
async def test_only_current_candidates_can_be_voted_for():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    subs = _subs([p1, p2])
    s = VotingSession(FakeClient(), [p1, p2], subs)
    later = next(x for x in subs if x.prompt_id == p2)
    with pytest.raises(ValueError):
        await s.cast_vote(later.id)


@pytest.mark.asyncio
async def test_duplicate_vote_counts_as_resolved():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    subs = _subs([p1, p2])
    client = FakeClient(fail_with={subs[0].id: "DuplicateVote"})
    s = VotingSession(client, [p1, p2], subs)
    await s.cast_vote(subs[0].id)
    assert s.current_prompt == p2 and p1 in s.resolved


@pytest.mark.asyncio
async def test_voting_closed_ends_the_walk_without_a_transition():
    p1, p2 = uuid.uuid4(), uuid.uuid4()
    subs = _subs([p1, p2])
    client = FakeClient(fail_with={subs[0].id: "VotingClosed"})
    s = VotingSession(client, [p1, p2], subs)
    await s.cast_vote(subs[0].id)
    assert s.done and client.transitions == []


@pytest.mark.asyncio
async def test_other_errors_propagate():
    p1 = uuid.uuid4()
    subs = _subs([p1])
    s = VotingSession(FakeClient(fail_with={subs[0].id: "NotAMember"}), [p1], subs)
    with pytest.raises(HuntClientError):
        await s.cast_vote(subs[0].id)
    assert not s.done
