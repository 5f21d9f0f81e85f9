"""
Results computation for a finished hunt.

Pure functions over ledger snapshots: no I/O, no clock, no randomness. Given
the same prompts, submissions, memberships and votes the output is identical.

Tie-breaks are deterministic but arbitrary:
- a prompt's winner is the first submission (in input order) holding the
  strictly greatest vote count;
- leaderboard rows with equal totals keep the order in which their author
  first appears among the submissions.
"""
from __future__ import annotations
from collections import Counter
from typing import Iterable, Protocol, Sequence
from uuid import UUID
from app.schemas.results import LeaderboardRow, PromptResult, PromptWinner, Results

ANONYMOUS = "Anonymous"


class _Prompt(Protocol):
    id: UUID
    text: str


class _Submission(Protocol):
    id: UUID
    prompt_id: UUID
    player_id: UUID


class _Member(Protocol):
    player_id: UUID
    display_name: str | None


class _Vote(Protocol):
    submission_id: UUID


def vote_counts(submissions: Iterable[_Submission], votes: Iterable[_Vote]) -> dict[UUID, int]:
    """Votes per submission. Votes are joined through the submissions, never by hunt."""
    ids = {s.id for s in submissions}
    counts = Counter(v.submission_id for v in votes if v.submission_id in ids)
    return {sid: counts.get(sid, 0) for sid in ids}


def pick_winner(candidates: Sequence[_Submission], counts: dict[UUID, int]) -> _Submission | None:
    winner = None
    best = -1
    for s in candidates:
        n = counts.get(s.id, 0)
        if n > best:
            winner, best = s, n
    return winner


def leaderboard(
    submissions: Sequence[_Submission],
    counts: dict[UUID, int],
    names: dict[UUID, str],
) -> list[LeaderboardRow]:
    totals: dict[UUID, int] = {}
    for s in submissions:
        totals[s.player_id] = totals.get(s.player_id, 0) + counts.get(s.id, 0)
    rows = [
        LeaderboardRow(player_id=pid, display_name=names.get(pid, ANONYMOUS), total_votes=total)
        for pid, total in totals.items()
    ]
    # sorted() is stable: equal totals keep encounter order
    return sorted(rows, key=lambda r: -r.total_votes)


def tally(
    prompts: Sequence[_Prompt],
    submissions: Sequence[_Submission],
    members: Iterable[_Member],
    votes: Iterable[_Vote],
) -> Results:
    counts = vote_counts(submissions, votes)
    names = {m.player_id: (m.display_name or ANONYMOUS) for m in members}

    by_prompt: dict[UUID, list[_Submission]] = {}
    for s in submissions:
        by_prompt.setdefault(s.prompt_id, []).append(s)

    prompt_rows = []
    for p in prompts:
        w = pick_winner(by_prompt.get(p.id, []), counts)
        winner = None
        if w is not None:
            winner = PromptWinner(
                submission_id=w.id,
                player_id=w.player_id,
                display_name=names.get(w.player_id, ANONYMOUS),
                votes=counts.get(w.id, 0),
            )
        prompt_rows.append(PromptResult(prompt_id=p.id, prompt_text=p.text, winner=winner))

    return Results(prompts=prompt_rows, leaderboard=leaderboard(submissions, counts, names))
