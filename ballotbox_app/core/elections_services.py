from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from functools import partial

from django.conf import settings
from django.db import DatabaseError, IntegrityError, connection, transaction
from django.utils import timezone

from core.elections_eligibility import EligibilityStatus, check_eligibility, has_voted_in_election
from core.models import Candidate, Election, Vote, Voter, VotingStatus
from core.tokens import generate_vote_token, normalize_vote_token
from core.vote_notifications import dispatch_vote_confirmation

logger = logging.getLogger(__name__)


class CommitStatus(StrEnum):
    committed = "committed"
    already_voted = "already_voted"
    invalid_candidate = "invalid_candidate"
    failed = "failed"
    voter_not_found = "voter_not_found"
    election_not_found = "election_not_found"
    election_not_open = "election_not_open"


class ErrorKind(StrEnum):
    not_found = "not_found"
    conflict = "conflict"
    validation_failed = "validation_failed"
    transient_failure = "transient_failure"
    unexpected = "unexpected"


@dataclass(frozen=True, slots=True)
class CommitResult:
    status: CommitStatus
    vote_id: int | None = None
    error_kind: ErrorKind | None = None
    detail: str = ""

    @property
    def committed(self) -> bool:
        return self.status == CommitStatus.committed

    @property
    def retryable(self) -> bool:
        return self.status == CommitStatus.failed and self.error_kind == ErrorKind.transient_failure


_ELIGIBILITY_REJECTIONS: dict[EligibilityStatus, tuple[CommitStatus, ErrorKind]] = {
    EligibilityStatus.voter_not_found: (CommitStatus.voter_not_found, ErrorKind.not_found),
    EligibilityStatus.election_not_found: (CommitStatus.election_not_found, ErrorKind.not_found),
    EligibilityStatus.already_voted: (CommitStatus.already_voted, ErrorKind.conflict),
    EligibilityStatus.election_not_open: (CommitStatus.election_not_open, ErrorKind.validation_failed),
}


class _AlreadyVotedError(Exception):
    """Raised inside the commit transaction to abort it when the pair has voted."""


def _rejected(status: CommitStatus, kind: ErrorKind, detail: str) -> CommitResult:
    return CommitResult(status=status, error_kind=kind, detail=detail)


def _apply_lock_timeout() -> None:
    # SQLite bounds lock waits with the connection `timeout` option instead.
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute("SET LOCAL lock_timeout = %s", [f"{int(settings.VOTE_COMMIT_LOCK_TIMEOUT_MS)}ms"])


def _write_vote(*, voter: Voter, election: Election, candidate: Candidate, vote_token: str) -> Vote:
    """Insert the vote and flip the voted flag. Must run inside transaction.atomic()."""

    _apply_lock_timeout()

    # Serialize concurrent submissions from the same voter. The unique
    # constraint on (voter, election) remains the final arbiter.
    Voter.objects.select_for_update().only("id").get(pk=voter.pk)

    if Vote.objects.filter(voter=voter, election=election).exists():
        raise _AlreadyVotedError

    # Tokens identify a single vote; a reused one is replaced rather than shared.
    if Vote.objects.filter(vote_token=vote_token).exists():
        vote_token = generate_vote_token()

    voted_at = timezone.now()
    vote = Vote.objects.create(
        election=election,
        candidate=candidate,
        voter=voter,
        vote_token=vote_token,
        created_at=voted_at,
    )

    status, _created = VotingStatus.objects.select_for_update().get_or_create(voter=voter, election=election)
    if status.has_voted:
        raise _AlreadyVotedError
    status.has_voted = True
    status.voted_at = voted_at
    status.save(update_fields=["has_voted", "voted_at"])

    return vote


def _check_preconditions(
    *,
    voter_id: int | None,
    election_id: int | None,
    candidate_id: int | None,
) -> tuple[Voter, Election, Candidate] | CommitResult:
    voter = Voter.objects.filter(pk=voter_id).first() if voter_id is not None else None
    if voter is None:
        return _rejected(CommitStatus.voter_not_found, ErrorKind.not_found, "Voter not found.")

    election = Election.objects.filter(pk=election_id).first() if election_id is not None else None
    if election is None:
        return _rejected(CommitStatus.election_not_found, ErrorKind.not_found, "Election not found.")

    candidate = (
        Candidate.objects.select_related("party").filter(pk=candidate_id).first()
        if candidate_id is not None
        else None
    )
    if candidate is None:
        return _rejected(CommitStatus.invalid_candidate, ErrorKind.not_found, "Candidate not found.")
    if candidate.election_id != election.id or candidate.party.election_id != election.id:
        return _rejected(
            CommitStatus.invalid_candidate,
            ErrorKind.validation_failed,
            "Candidate does not stand in this election.",
        )

    eligibility = check_eligibility(voter_id=voter.id, election_id=election.id)
    if eligibility != EligibilityStatus.eligible:
        status, kind = _ELIGIBILITY_REJECTIONS[eligibility]
        logger.info(
            "Vote rejected voter_id=%s election_id=%s eligibility=%s",
            voter.id,
            election.id,
            eligibility,
        )
        return _rejected(status, kind, f"Not eligible: {eligibility}.")

    return voter, election, candidate


def _conflict_or_failure(*, voter: Voter, election: Election, exc: IntegrityError) -> CommitResult:
    # A lost race against a concurrent commit for the same pair surfaces as a
    # uniqueness violation. Confirm against the committed state before saying so.
    try:
        lost_race = has_voted_in_election(voter_id=voter.id, election_id=election.id)
    except DatabaseError:
        lost_race = False

    if lost_race:
        logger.info("Vote conflict voter_id=%s election_id=%s: lost concurrent commit", voter.id, election.id)
        return _rejected(CommitStatus.already_voted, ErrorKind.conflict, "A vote has already been recorded.")

    logger.warning("Vote commit failed voter_id=%s election_id=%s: %s", voter.id, election.id, exc)
    return _rejected(CommitStatus.failed, ErrorKind.transient_failure, "Vote could not be recorded.")


def commit_vote(
    *,
    voter_id: int | None,
    election_id: int | None,
    candidate_id: int | None,
    vote_token: str | None = None,
) -> CommitResult:
    """Record one vote for `voter_id` in `election_id`, at most once.

    Preconditions are checked before any write. The vote row and the voted
    flag are written in a single transaction; on any failure neither survives.
    The confirmation email is dispatched only once the outermost transaction
    has committed, and its failure never affects the returned result.

    A `failed` result with a transient error kind is safe to retry: the retry
    either succeeds or observes `already_voted`.
    """

    try:
        checked = _check_preconditions(voter_id=voter_id, election_id=election_id, candidate_id=candidate_id)
    except DatabaseError as exc:
        logger.warning("Vote precondition check failed voter_id=%s election_id=%s: %s", voter_id, election_id, exc)
        return _rejected(CommitStatus.failed, ErrorKind.transient_failure, "Vote could not be recorded.")
    if isinstance(checked, CommitResult):
        return checked
    voter, election, candidate = checked

    token = normalize_vote_token(vote_token)

    try:
        with transaction.atomic():
            vote = _write_vote(voter=voter, election=election, candidate=candidate, vote_token=token)
    except _AlreadyVotedError:
        logger.info("Vote conflict voter_id=%s election_id=%s: already voted", voter.id, election.id)
        return _rejected(CommitStatus.already_voted, ErrorKind.conflict, "A vote has already been recorded.")
    except IntegrityError as exc:
        return _conflict_or_failure(voter=voter, election=election, exc=exc)
    except DatabaseError as exc:
        logger.warning("Vote commit failed voter_id=%s election_id=%s: %s", voter.id, election.id, exc)
        return _rejected(CommitStatus.failed, ErrorKind.transient_failure, "Vote could not be recorded.")
    except Exception:
        logger.exception("Vote commit failed unexpectedly voter_id=%s election_id=%s", voter.id, election.id)
        return _rejected(CommitStatus.failed, ErrorKind.unexpected, "Vote could not be recorded.")

    logger.info("Vote committed vote_id=%s voter_id=%s election_id=%s", vote.id, voter.id, election.id)

    transaction.on_commit(partial(dispatch_vote_confirmation, vote_id=vote.id), robust=True)

    return CommitResult(status=CommitStatus.committed, vote_id=vote.id)
