from django.urls import path

from core import views_elections

urlpatterns = [
    path("", views_elections.election_list, name="home"),
    path("elections/", views_elections.election_list, name="election-list"),
    path("elections/<int:election_id>/vote/", views_elections.election_vote, name="election-vote"),
    path(
        "elections/<int:election_id>/vote/submit/",
        views_elections.election_vote_submit,
        name="election-vote-submit",
    ),
    path(
        "elections/<int:election_id>/vote/thanks/",
        views_elections.election_vote_thanks,
        name="election-vote-thanks",
    ),
]
