from __future__ import annotations

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import RequestFactory, TestCase
from django.urls import reverse

from core.admin import CandidateInline
from core.elections_services import CommitStatus, ErrorKind, commit_vote
from core.models import Candidate, Election, Party, Vote
from core.tests.election_factories import make_candidate, make_election, make_voter


class CandidatePartyElectionTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.election = make_election(name="Election A")
        self.other = make_election(name="Election B")
        self.home_party = Party.objects.create(election=self.election, name="Green")
        self.foreign_party = Party.objects.create(election=self.other, name="Blue")

    def test_clean_rejects_party_from_other_election(self) -> None:
        candidate = Candidate(election=self.election, party=self.foreign_party, name="Alice")

        with self.assertRaises(ValidationError) as ctx:
            candidate.full_clean()

        self.assertIn("party", ctx.exception.message_dict)

    def test_clean_accepts_party_from_same_election(self) -> None:
        Candidate(election=self.election, party=self.home_party, name="Alice").full_clean()

    def test_commit_rejects_candidate_with_foreign_party(self) -> None:
        # Written directly, bypassing model validation.
        candidate = Candidate.objects.create(election=self.election, party=self.foreign_party, name="Alice")
        voter = make_voter(username="voter1")

        result = commit_vote(voter_id=voter.id, election_id=self.election.id, candidate_id=candidate.id)

        self.assertEqual(result.status, CommitStatus.invalid_candidate)
        self.assertEqual(result.error_kind, ErrorKind.validation_failed)
        self.assertFalse(Vote.objects.exists())


class CandidateAdminPartyChoicesTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin_user = get_user_model().objects.create_superuser(
            username="admin",
            email="admin@example.com",
            password="pw",
        )
        self.client.force_login(self.admin_user)
        self.election = make_election(name="Election A")
        self.other = make_election(name="Election B")
        self.candidate = make_candidate(election=self.election, name="Alice", party_name="Green")
        self.foreign_party = Party.objects.create(election=self.other, name="Blue")

    def test_change_form_offers_only_parties_of_candidate_election(self) -> None:
        response = self.client.get(reverse("admin:core_candidate_change", args=[self.candidate.id]))

        self.assertEqual(response.status_code, 200)
        parties = response.context["adminform"].form.fields["party"].queryset
        self.assertEqual(list(parties), [self.candidate.party])

    def test_change_form_rejects_party_from_other_election(self) -> None:
        response = self.client.post(
            reverse("admin:core_candidate_add"),
            data={"election": self.election.id, "party": self.foreign_party.id, "name": "Bob"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn("party", response.context["adminform"].form.errors)
        self.assertFalse(Candidate.objects.filter(name="Bob").exists())

    def test_election_inline_offers_only_that_election_parties(self) -> None:
        request = RequestFactory().get("/")
        request.user = self.admin_user
        inline = CandidateInline(Election, admin.site)

        formset_class = inline.get_formset(request, self.election)
        parties = formset_class.form.base_fields["party"].queryset

        self.assertEqual(list(parties), [self.candidate.party])
