from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from django.db import connection
from django.test import TransactionTestCase

from core.elections_services import CommitResult, CommitStatus, commit_vote
from core.models import Vote, VotingStatus
from core.tests.election_factories import make_candidate, make_election, make_voter


class ConcurrentCommitVoteTests(TransactionTestCase):
    """Many simultaneous submissions for one voter must leave exactly one vote."""

    submissions = 50

    def setUp(self) -> None:
        super().setUp()
        self.election = make_election()
        self.candidates = [
            make_candidate(election=self.election, name=f"Candidate {i}", party_name=f"Party {i % 5}")
            for i in range(5)
        ]
        self.voter = make_voter(username="racer")

    def _submit_all(self) -> list[CommitResult]:
        barrier = threading.Barrier(self.submissions)

        def submit(index: int) -> CommitResult:
            try:
                barrier.wait(timeout=30)
                return commit_vote(
                    voter_id=self.voter.id,
                    election_id=self.election.id,
                    candidate_id=self.candidates[index % len(self.candidates)].id,
                )
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=self.submissions) as pool:
            return list(pool.map(submit, range(self.submissions)))

    def test_exactly_one_submission_commits(self) -> None:
        with patch("core.elections_services.dispatch_vote_confirmation") as dispatch_mock:
            results = self._submit_all()

        statuses = [result.status for result in results]
        committed = [result for result in results if result.committed]
        self.assertEqual(len(committed), 1, statuses)
        self.assertTrue(
            all(status in {CommitStatus.committed, CommitStatus.already_voted, CommitStatus.failed} for status in statuses),
            statuses,
        )

        votes = list(Vote.objects.filter(voter=self.voter, election=self.election))
        self.assertEqual(len(votes), 1)
        self.assertEqual(votes[0].pk, committed[0].vote_id)

        status = VotingStatus.objects.get(voter=self.voter, election=self.election)
        self.assertTrue(status.has_voted)
        self.assertEqual(status.voted_at, votes[0].created_at)

        dispatch_mock.assert_called_once_with(vote_id=committed[0].vote_id)

    def test_distinct_voters_all_commit(self) -> None:
        voters = [make_voter(username=f"voter{i}") for i in range(10)]
        barrier = threading.Barrier(len(voters))

        def submit(voter_id: int) -> CommitResult:
            try:
                barrier.wait(timeout=30)
                return commit_vote(
                    voter_id=voter_id,
                    election_id=self.election.id,
                    candidate_id=self.candidates[0].id,
                )
            finally:
                connection.close()

        with (
            patch("core.elections_services.dispatch_vote_confirmation"),
            ThreadPoolExecutor(max_workers=len(voters)) as pool,
        ):
            results = list(pool.map(submit, [voter.id for voter in voters]))

        self.assertTrue(all(result.committed for result in results), [result.status for result in results])
        self.assertEqual(Vote.objects.filter(election=self.election).count(), len(voters))
        self.assertEqual(VotingStatus.objects.filter(election=self.election, has_voted=True).count(), len(voters))
