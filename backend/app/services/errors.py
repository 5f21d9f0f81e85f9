from __future__ import annotations


class HuntError(Exception):
    """Base for domain failures; `status_code` is what the API answers with."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class HuntNotFound(HuntError):
    status_code = 404


class SubmissionNotFound(HuntError):
    status_code = 404


class NotAMember(HuntError):
    status_code = 403


class NotYourSubmission(HuntError):
    status_code = 403


class InvalidPrompt(HuntError):
    status_code = 400


class InvalidImage(HuntError):
    status_code = 400


class UnknownPack(HuntError):
    status_code = 400


class IllegalTransition(HuntError):
    status_code = 409


class DuplicateVote(HuntError):
    status_code = 409


class PhotoAlreadyAttached(HuntError):
    status_code = 409


class CompletionRequirementNotMet(HuntError):
    status_code = 409


class BlobWriteFailed(HuntError):
    status_code = 502


class JoinCodeExhausted(HuntError):
    status_code = 500


class VotingClosed(HuntError):
    status_code = 409


class ResultsNotReady(HuntError):
    status_code = 409


class HuntNotActive(HuntError):
    status_code = 409
