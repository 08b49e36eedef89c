from __future__ import annotations

from typing import override

from django import forms

from core.models import Candidate, Election


class CandidateChoiceField(forms.ModelChoiceField):
    @override
    def label_from_instance(self, obj: Candidate) -> str:
        return obj.description


class VoteForm(forms.Form):
    candidate = CandidateChoiceField(
        queryset=Candidate.objects.none(),
        empty_label=None,
        widget=forms.RadioSelect,
        error_messages={
            "required": "Please select a candidate.",
            "invalid_choice": "Please select a candidate from this election.",
        },
    )

    def __init__(self, *args, election: Election, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.election = election
        self.fields["candidate"].queryset = (
            Candidate.objects.filter(election=election).select_related("party").order_by("party__name", "name")
        )
