from __future__ import annotations

from typing import override

from django.contrib import admin

from .models import Candidate, Election, Party, Vote, Voter, VotingStatus


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """Admin listing for rows written only by the vote commit protocol."""

    @override
    def has_add_permission(self, request):
        return False

    @override
    def has_change_permission(self, request, obj=None):
        return False

    @override
    def has_delete_permission(self, request, obj=None):
        return False


def _parties_for_election(election_id: int | None):
    if election_id is None:
        return Party.objects.none()
    return Party.objects.filter(election_id=election_id)


class PartyInline(admin.TabularInline):
    model = Party
    extra = 0


class CandidateInline(admin.TabularInline):
    model = Candidate
    extra = 0

    @override
    def get_formset(self, request, obj=None, **kwargs):
        request._candidate_election_id = obj.pk if obj is not None else None
        return super().get_formset(request, obj, **kwargs)

    @override
    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        if db_field.name == "party":
            kwargs["queryset"] = _parties_for_election(getattr(request, "_candidate_election_id", None))
        return super().formfield_for_foreignkey(db_field, request, **kwargs)


@admin.register(Election)
class ElectionAdmin(admin.ModelAdmin):
    list_display = ("name", "start_datetime", "end_datetime", "created_at")
    ordering = ("-start_datetime",)
    search_fields = ("name",)
    inlines = (PartyInline, CandidateInline)


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ("name", "election")
    list_filter = ("election",)
    search_fields = ("name",)


@admin.register(Candidate)
class CandidateAdmin(admin.ModelAdmin):
    list_display = ("name", "party", "election")
    list_filter = ("election",)
    search_fields = ("name", "party__name")

    @override
    def get_form(self, request, obj=None, change=False, **kwargs):
        request._candidate_election_id = obj.election_id if obj is not None else None
        return super().get_form(request, obj, change=change, **kwargs)

    @override
    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        # New candidates may pick any party; Candidate.clean() rejects a mismatch.
        election_id = getattr(request, "_candidate_election_id", None)
        if db_field.name == "party" and election_id is not None:
            kwargs["queryset"] = _parties_for_election(election_id)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)


@admin.register(Voter)
class VoterAdmin(admin.ModelAdmin):
    list_display = ("name", "user", "created_at")
    search_fields = ("name", "user__username", "user__email")


@admin.register(VotingStatus)
class VotingStatusAdmin(ReadOnlyModelAdmin):
    list_display = ("voter", "election", "has_voted", "voted_at")
    list_filter = ("election", "has_voted")


@admin.register(Vote)
class VoteAdmin(ReadOnlyModelAdmin):
    list_display = ("id", "election", "voter", "vote_token", "created_at")
    list_filter = ("election",)
    search_fields = ("vote_token",)
    ordering = ("-created_at",)
