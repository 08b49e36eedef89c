from __future__ import annotations

from typing import override

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Election(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(end_datetime__gt=models.F("start_datetime")),
                name="chk_election_window_ordered",
            ),
        ]
        ordering = ("-start_datetime", "id")

    def __str__(self) -> str:
        return self.name

    def is_open(self, *, at=None) -> bool:
        """Return whether `at` (default: now) falls inside [start, end)."""

        now = at if at is not None else timezone.now()
        return self.start_datetime <= now < self.end_datetime


class Party(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="parties")
    name = models.CharField(max_length=255)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["election", "name"], name="uniq_party_election_name"),
        ]
        ordering = ("name", "id")
        verbose_name_plural = "parties"

    def __str__(self) -> str:
        return self.name


class Candidate(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="candidates")
    party = models.ForeignKey(Party, on_delete=models.PROTECT, related_name="candidates")
    name = models.CharField(max_length=255)

    class Meta:
        ordering = ("name", "id")

    def __str__(self) -> str:
        return self.name

    @override
    def clean(self) -> None:
        super().clean()
        if self.party_id is not None and self.election_id is not None and self.party.election_id != self.election_id:
            raise ValidationError({"party": "The party must belong to the same election as the candidate."})

    @property
    def description(self) -> str:
        # Shown to voters in confirmations, e.g. "Jane Doe (Green Party)".
        party_name = self.party.name if self.party_id is not None else ""
        return f"{self.name} ({party_name or 'Independent'})"


class Voter(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="voter")
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name", "id")

    def __str__(self) -> str:
        return self.name


class VotingStatus(models.Model):
    """Per-election voted flag for a voter.

    Written only by the vote commit protocol, in the same transaction as the
    Vote row it mirrors.
    """

    voter = models.ForeignKey(Voter, on_delete=models.CASCADE, related_name="voting_statuses")
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="voting_statuses")
    has_voted = models.BooleanField(default=False)
    voted_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["voter", "election"], name="uniq_votingstatus_voter_election"),
        ]
        verbose_name_plural = "voting statuses"

    def __str__(self) -> str:
        state = "voted" if self.has_voted else "not voted"
        return f"{self.voter_id}@{self.election_id}: {state}"


class Vote(models.Model):
    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="votes")
    candidate = models.ForeignKey(Candidate, on_delete=models.PROTECT, related_name="votes")
    voter = models.ForeignKey(Voter, on_delete=models.PROTECT, related_name="votes")
    vote_token = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            # At most one vote per voter per election. The commit protocol relies
            # on the database enforcing this under concurrency.
            models.UniqueConstraint(fields=["voter", "election"], name="uniq_vote_voter_election"),
        ]
        indexes = [
            models.Index(fields=["election", "candidate"], name="v_el_cand"),
        ]
        ordering = ("created_at", "id")

    def __str__(self) -> str:
        return f"vote {self.pk} in election {self.election_id}"

    @override
    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValueError("votes are immutable once recorded")
        super().save(*args, **kwargs)

    @override
    def delete(self, *args, **kwargs):
        raise ValueError("votes cannot be deleted")
