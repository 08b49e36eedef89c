from __future__ import annotations

import datetime
from enum import StrEnum

from django.utils import timezone

from core.models import Election, Vote, Voter, VotingStatus


class EligibilityStatus(StrEnum):
    eligible = "eligible"
    already_voted = "already_voted"
    voter_not_found = "voter_not_found"
    election_not_found = "election_not_found"
    election_not_open = "election_not_open"


def has_voted_in_election(*, voter_id: int, election_id: int) -> bool:
    """Return True if a vote row or the voted flag exists for the pair.

    Both sources are consulted; the commit protocol keeps them in lockstep, so
    disagreement is only possible after manual database edits.
    """

    if Vote.objects.filter(voter_id=voter_id, election_id=election_id).exists():
        return True
    return VotingStatus.objects.filter(voter_id=voter_id, election_id=election_id, has_voted=True).exists()


def check_eligibility(
    *,
    voter_id: int | None,
    election_id: int | None,
    now: datetime.datetime | None = None,
) -> EligibilityStatus:
    # Always read through to the database: a cached answer would defeat the
    # re-check performed right before a vote is committed.
    if voter_id is None or not Voter.objects.filter(pk=voter_id).exists():
        return EligibilityStatus.voter_not_found

    election = (
        Election.objects.filter(pk=election_id).only("id", "start_datetime", "end_datetime").first()
        if election_id is not None
        else None
    )
    if election is None:
        return EligibilityStatus.election_not_found

    if has_voted_in_election(voter_id=voter_id, election_id=election.id):
        return EligibilityStatus.already_voted

    if not election.is_open(at=now if now is not None else timezone.now()):
        return EligibilityStatus.election_not_open

    return EligibilityStatus.eligible
