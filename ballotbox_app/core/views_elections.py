from __future__ import annotations

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import Http404, HttpRequest, HttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_POST

from core.elections_eligibility import EligibilityStatus, check_eligibility, has_voted_in_election
from core.elections_services import CommitStatus, commit_vote
from core.forms_elections import VoteForm
from core.models import Election, Voter
from core.tokens import generate_vote_token

_ELIGIBILITY_MESSAGES: dict[EligibilityStatus, str] = {
    EligibilityStatus.eligible: "You may vote in this election.",
    EligibilityStatus.already_voted: "You have already cast your vote for this election.",
    EligibilityStatus.voter_not_found: "Voter profile not found.",
    EligibilityStatus.election_not_found: "Election not found.",
    EligibilityStatus.election_not_open: "This election is not open for voting.",
}

_COMMIT_MESSAGES: dict[CommitStatus, str] = {
    CommitStatus.already_voted: "A vote has already been recorded for this account.",
    CommitStatus.invalid_candidate: "The selected candidate does not stand in this election.",
    CommitStatus.failed: "An error occurred while processing your vote. Please try again.",
    CommitStatus.voter_not_found: "Voter profile not found.",
    CommitStatus.election_not_found: "Election not found.",
    CommitStatus.election_not_open: "This election is not open for voting.",
}


def _vote_token_session_key(election_id: int) -> str:
    return f"_vote_token_{election_id}"


def _current_voter(request: HttpRequest) -> Voter | None:
    return Voter.objects.filter(user_id=request.user.pk).only("id", "name").first()


def _get_election(election_id: int) -> Election:
    election = Election.objects.filter(pk=election_id).first()
    if election is None:
        raise Http404
    return election


@login_required
@require_GET
def election_list(request: HttpRequest) -> HttpResponse:
    voter = _current_voter(request)
    if voter is None:
        messages.error(request, _ELIGIBILITY_MESSAGES[EligibilityStatus.voter_not_found])

    rows: list[dict[str, object]] = []
    for election in Election.objects.all():
        status = check_eligibility(voter_id=voter.id if voter is not None else None, election_id=election.id)
        rows.append(
            {
                "election": election,
                "status": status,
                "status_message": _ELIGIBILITY_MESSAGES[status],
                "can_vote": status == EligibilityStatus.eligible,
            }
        )

    return render(request, "core/election_list.html", {"voter": voter, "rows": rows})


@login_required
@require_GET
def election_vote(request: HttpRequest, election_id: int) -> HttpResponse:
    election = _get_election(election_id)
    voter = _current_voter(request)

    status = check_eligibility(voter_id=voter.id if voter is not None else None, election_id=election.id)
    if status != EligibilityStatus.eligible:
        messages.error(request, _ELIGIBILITY_MESSAGES[status])
        return redirect("election-list")

    # Bookkeeping only: the token is kept server-side and recorded with the vote.
    request.session[_vote_token_session_key(election.id)] = generate_vote_token()

    return render(
        request,
        "core/election_vote.html",
        {
            "election": election,
            "voter": voter,
            "form": VoteForm(election=election),
        },
    )


@login_required
@require_POST
def election_vote_submit(request: HttpRequest, election_id: int) -> HttpResponse:
    election = _get_election(election_id)
    voter = _current_voter(request)
    if voter is None:
        messages.error(request, _COMMIT_MESSAGES[CommitStatus.voter_not_found])
        return redirect("election-list")

    form = VoteForm(request.POST, election=election)
    if not form.is_valid():
        return render(
            request,
            "core/election_vote.html",
            {"election": election, "voter": voter, "form": form},
            status=400,
        )

    result = commit_vote(
        voter_id=voter.id,
        election_id=election.id,
        candidate_id=form.cleaned_data["candidate"].id,
        vote_token=request.session.pop(_vote_token_session_key(election.id), None),
    )

    if result.committed:
        messages.success(request, "Your vote has been successfully recorded.")
        return redirect("election-vote-thanks", election_id=election.id)

    messages.error(request, _COMMIT_MESSAGES[result.status])
    if result.status in {CommitStatus.failed, CommitStatus.invalid_candidate}:
        return redirect("election-vote", election_id=election.id)
    return redirect("election-list")


@login_required
@require_GET
def election_vote_thanks(request: HttpRequest, election_id: int) -> HttpResponse:
    election = _get_election(election_id)
    voter = _current_voter(request)
    if voter is None or not has_voted_in_election(voter_id=voter.id, election_id=election.id):
        return redirect("election-list")
    return render(request, "core/election_vote_thanks.html", {"election": election})
