from __future__ import annotations
import random
from uuid import UUID
import httpx
import structlog
from app.client.errors import HuntClientError
from app.client.voting import VotingSession
from app.schemas.hunt import FinishResult, HuntPlayerPublic, HuntPublic, HuntStatus
from app.schemas.pack import PromptPublic
from app.schemas.results import Results
from app.schemas.submission import SubmissionPublic, SubmissionState, VotingSubmission
from app.services.prompt_order import fisher_yates, incomplete_first

log = structlog.get_logger()


class HuntClient:
    """
    One device's view of one hunt. Holds what the device keeps locally
    (identity token, shuffled prompt order, submission ids per prompt) and
    talks to the API for everything shared. Nothing here is global: each
    simulated player gets its own instance.
    """

    def __init__(self, http: httpx.AsyncClient, token: str, player_id: UUID, rng: random.Random | None = None):
        self.http = http
        self.token = token
        self.player_id = player_id
        self.hunt_id: UUID | None = None
        self.hunt: HuntPublic | None = None
        self.prompts: list[PromptPublic] = []
        self.submission_id_by_prompt: dict[UUID, UUID] = {}
        self.state_by_prompt: dict[UUID, SubmissionState] = {}
        self.photo_url_by_prompt: dict[UUID, str | None] = {}
        self._rng = rng

    @classmethod
    async def register(cls, http: httpx.AsyncClient, name: str = "anon", rng: random.Random | None = None) -> "HuntClient":
        r = await http.post("/players", json={"name": name})
        body = _check(r)
        return cls(http, body["access"], UUID(body["player"]["id"]), rng=rng)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    async def _call(self, method: str, url: str, **kw) -> dict | list | None:
        r = await self.http.request(method, url, headers=self.headers, **kw)
        return _check(r)

    def _hunt_url(self, suffix: str = "") -> str:
        if self.hunt_id is None:
            raise RuntimeError("No hunt selected")
        return f"/hunts/{self.hunt_id}{suffix}"

    def _enter(self, hunt_id: UUID) -> None:
        if self.hunt_id != hunt_id:
            self.hunt_id = hunt_id
            self.hunt = None
            self.prompts = []
            self.submission_id_by_prompt = {}
            self.state_by_prompt = {}
            self.photo_url_by_prompt = {}

    # --- lobby ---

    async def create_hunt(self, pack: str, display_name: str | None = None, **opts) -> HuntPublic:
        body = await self._call("POST", "/hunts", json={"pack": pack, "display_name": display_name, **opts})
        hunt = HuntPublic.model_validate(body)
        self._enter(hunt.id)
        self.hunt = hunt
        return hunt

    async def join(self, code: str, display_name: str | None = None) -> HuntPlayerPublic:
        body = await self._call("POST", f"/hunts/{code}/join", json={"display_name": display_name})
        hp = HuntPlayerPublic.model_validate(body)
        self._enter(hp.hunt_id)
        return hp

    async def refresh(self) -> HuntPublic:
        """Authoritative re-read; used after every (re)connect to the change feed."""
        self.hunt = HuntPublic.model_validate(await self._call("GET", self._hunt_url()))
        return self.hunt

    async def players(self) -> list[HuntPlayerPublic]:
        return [HuntPlayerPublic.model_validate(x) for x in await self._call("GET", self._hunt_url("/players"))]

    async def set_display_name(self, name: str) -> HuntPlayerPublic:
        return HuntPlayerPublic.model_validate(await self._call("PATCH", self._hunt_url("/me"), json={"display_name": name}))

    async def start(self) -> HuntPublic:
        self.hunt = HuntPublic.model_validate(await self._call("POST", self._hunt_url("/start")))
        return self.hunt

    async def transition(self, target: str | HuntStatus) -> HuntPublic:
        target = HuntStatus(target)
        self.hunt = HuntPublic.model_validate(
            await self._call("POST", self._hunt_url("/transition"), json={"target": target.value})
        )
        return self.hunt

    # --- prompts & photos ---

    async def load_prompts(self) -> list[PromptPublic]:
        """Fetch and shuffle once per hunt; later calls keep the same order."""
        if not self.prompts:
            raw = [PromptPublic.model_validate(x) for x in await self._call("GET", self._hunt_url("/prompts"))]
            self.prompts = fisher_yates(raw, self._rng)
        return self.prompts

    def display_prompts(self) -> list[PromptPublic]:
        return incomplete_first(self.prompts, lambda p: self.state_by_prompt.get(p.id) == SubmissionState.SAVED)

    async def sync_submissions(self) -> list[SubmissionPublic]:
        subs = [SubmissionPublic.model_validate(x) for x in await self._call("GET", self._hunt_url("/submissions/mine"))]
        for s in subs:
            self._remember(s)
        return subs

    def _remember(self, s: SubmissionPublic) -> None:
        self.submission_id_by_prompt[s.prompt_id] = s.id
        self.state_by_prompt[s.prompt_id] = s.state
        if s.photo_url:
            self.photo_url_by_prompt[s.prompt_id] = s.photo_url

    async def ensure_submission(self, prompt_id: UUID) -> UUID:
        existing = self.submission_id_by_prompt.get(prompt_id)
        if existing:
            return existing
        s = SubmissionPublic.model_validate(
            await self._call("POST", self._hunt_url("/submissions"), json={"prompt_id": str(prompt_id)})
        )
        self._remember(s)
        return s.id

    async def upload_photo(self, prompt_id: UUID, data: bytes, filename: str = "photo.jpg") -> SubmissionPublic:
        submission_id = await self.ensure_submission(prompt_id)
        s = SubmissionPublic.model_validate(await self._call(
            "PUT",
            self._hunt_url(f"/submissions/{submission_id}/photo"),
            files={"file": (filename, data, "application/octet-stream")},
        ))
        self._remember(s)
        return s

    # --- finishing & voting ---

    async def finish(self) -> FinishResult:
        res = FinishResult.model_validate(await self._call("POST", self._hunt_url("/finish")))
        log.info("finished_self", hunt_id=str(self.hunt_id), status=res.status.value, all_finished=res.all_finished)
        return res

    async def undo_finish(self) -> FinishResult:
        return FinishResult.model_validate(await self._call("DELETE", self._hunt_url("/finish")))

    async def leave(self, hunt_id: UUID) -> None:
        await self._call("DELETE", f"/hunts/{hunt_id}/me")
        if self.hunt_id == hunt_id:
            self._enter(None)

    async def history(self) -> list[dict]:
        return await self._call("GET", "/hunts/mine")

    async def vote(self, submission_id: UUID, category: str = "best") -> dict:
        return await self._call(
            "POST", self._hunt_url("/votes"), json={"submission_id": str(submission_id), "category": category}
        )

    async def voting_submissions(self) -> list[VotingSubmission]:
        return [VotingSubmission.model_validate(x) for x in await self._call("GET", self._hunt_url("/submissions"))]

    async def voting_session(self) -> VotingSession:
        await self.load_prompts()
        return VotingSession(self, [p.id for p in self.prompts], await self.voting_submissions())

    async def results(self) -> Results:
        return Results.model_validate(await self._call("GET", self._hunt_url("/results")))


def _check(r: httpx.Response):
    if r.status_code >= 400:
        try:
            body = r.json()
        except ValueError:
            body = {}
        detail = body.get("detail") if isinstance(body, dict) else None
        raise HuntClientError(r.status_code, str(detail or r.text), body.get("error") if isinstance(body, dict) else None)
    if r.status_code == 204 or not r.content:
        return None
    return r.json()
