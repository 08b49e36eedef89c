from django.db import DatabaseError, connection
from django.http import HttpResponse

from core.models import Election


def healthz(request):
    return HttpResponse("ok", content_type="text/plain")


def readyz(request):
    # Ready means the database answers and the election schema is migrated.
    try:
        connection.ensure_connection()
        Election.objects.only("id").exists()
    except DatabaseError:
        return HttpResponse("db unavailable", status=503, content_type="text/plain")

    return HttpResponse("ok", content_type="text/plain")
