from __future__ import annotations
from typing import TYPE_CHECKING, Sequence
from uuid import UUID
import structlog
from app.client.errors import HuntClientError
from app.schemas.submission import VotingSubmission

if TYPE_CHECKING:
    from app.client.hunt_client import HuntClient

log = structlog.get_logger()


class VotingSession:
    """
    One device's walk through the prompts that have photos. Every client
    walks independently; the only shared effects are the votes and the
    single voting -> finished request made when this walk resolves its last
    prompt.
    """

    def __init__(self, client: "HuntClient", prompt_order: Sequence[UUID], submissions: Sequence[VotingSubmission]):
        self._client = client
        by_prompt: dict[UUID, list[VotingSubmission]] = {}
        for s in submissions:
            by_prompt.setdefault(s.prompt_id, []).append(s)
        self.prompt_ids: list[UUID] = [pid for pid in prompt_order if by_prompt.get(pid)]
        self._by_prompt = by_prompt
        self.index = 0
        self.resolved: set[UUID] = set()
        self.finish_requested = False

    @property
    def done(self) -> bool:
        return self.finish_requested or not self.prompt_ids

    @property
    def current_prompt(self) -> UUID | None:
        if self.done or self.index >= len(self.prompt_ids):
            return None
        return self.prompt_ids[self.index]

    @property
    def candidates(self) -> list[VotingSubmission]:
        pid = self.current_prompt
        return list(self._by_prompt.get(pid, [])) if pid else []

    async def cast_vote(self, submission_id: UUID) -> None:
        if submission_id not in {s.id for s in self.candidates}:
            raise ValueError("Submission is not a candidate for the current prompt")
        try:
            await self._client.vote(submission_id)
        except HuntClientError as e:
            if e.error == "VotingClosed":
                # Someone else already finished the hunt
                self.finish_requested = True
                return
            if e.error != "DuplicateVote":
                raise
            # Voted on this prompt before (e.g. a restarted walk): it counts as resolved
        await self.advance()

    async def skip(self) -> None:
        await self.advance()

    async def advance(self) -> None:
        pid = self.current_prompt
        if pid is None:
            return
        self.resolved.add(pid)
        if self.index < len(self.prompt_ids) - 1:
            self.index += 1
            return
        # Last prompt: this walk asks for the transition once
        await self._client.transition("finished")
        self.finish_requested = True
        log.info("voting_walk_complete", hunt_id=str(self._client.hunt_id), prompts=len(self.prompt_ids))
