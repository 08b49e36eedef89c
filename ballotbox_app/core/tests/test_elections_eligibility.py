from __future__ import annotations

import datetime

from django.test import TestCase
from django.utils import timezone

from core.elections_eligibility import EligibilityStatus, check_eligibility, has_voted_in_election
from core.elections_services import commit_vote
from core.models import VotingStatus
from core.tests.election_factories import make_candidate, make_election, make_voter


class EligibilityGateTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.candidate = make_candidate(election=self.election, name="Alice")
        self.voter = make_voter(username="voter1")

    def test_eligible_before_any_vote(self) -> None:
        status = check_eligibility(voter_id=self.voter.id, election_id=self.election.id)
        self.assertEqual(status, EligibilityStatus.eligible)

    def test_already_voted_after_commit(self) -> None:
        result = commit_vote(voter_id=self.voter.id, election_id=self.election.id, candidate_id=self.candidate.id)
        self.assertTrue(result.committed)

        status = check_eligibility(voter_id=self.voter.id, election_id=self.election.id)
        self.assertEqual(status, EligibilityStatus.already_voted)

    def test_unknown_voter(self) -> None:
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id + 1000, election_id=self.election.id),
            EligibilityStatus.voter_not_found,
        )
        self.assertEqual(
            check_eligibility(voter_id=None, election_id=self.election.id),
            EligibilityStatus.voter_not_found,
        )

    def test_unknown_election(self) -> None:
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id + 1000),
            EligibilityStatus.election_not_found,
        )

    def test_voter_is_checked_before_election(self) -> None:
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id + 1000, election_id=self.election.id + 1000),
            EligibilityStatus.voter_not_found,
        )

    def test_election_outside_window_is_not_open(self) -> None:
        upcoming = make_election(name="Upcoming", opens_in_days=1, closes_in_days=2)
        finished = make_election(name="Finished", opens_in_days=-3, closes_in_days=-1)

        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=upcoming.id),
            EligibilityStatus.election_not_open,
        )
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=finished.id),
            EligibilityStatus.election_not_open,
        )

    def test_window_end_is_exclusive(self) -> None:
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id, now=self.election.end_datetime),
            EligibilityStatus.election_not_open,
        )
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id, now=self.election.start_datetime),
            EligibilityStatus.eligible,
        )

    def test_voted_flag_alone_blocks_voting(self) -> None:
        VotingStatus.objects.create(voter=self.voter, election=self.election, has_voted=True, voted_at=timezone.now())

        self.assertTrue(has_voted_in_election(voter_id=self.voter.id, election_id=self.election.id))
        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id),
            EligibilityStatus.already_voted,
        )

    def test_vote_in_one_election_does_not_block_another(self) -> None:
        other = make_election(name="Referendum")
        commit_vote(voter_id=self.voter.id, election_id=self.election.id, candidate_id=self.candidate.id)

        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=other.id),
            EligibilityStatus.eligible,
        )

    def test_check_has_no_side_effects(self) -> None:
        for _ in range(3):
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id)

        self.assertFalse(VotingStatus.objects.exists())

    def test_already_voted_reported_even_after_election_closes(self) -> None:
        commit_vote(voter_id=self.voter.id, election_id=self.election.id, candidate_id=self.candidate.id)
        later = self.election.end_datetime + datetime.timedelta(days=1)

        self.assertEqual(
            check_eligibility(voter_id=self.voter.id, election_id=self.election.id, now=later),
            EligibilityStatus.already_voted,
        )
