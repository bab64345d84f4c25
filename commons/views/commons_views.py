import logging
from datetime import datetime, timezone

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger("django.request")


def liveness(request):
    return JsonResponse({"ok": True})


def readiness(request):
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
    except DatabaseError as e:
        logger.error("readiness_db_indisponivel", extra={"error": str(e)})
        return JsonResponse({"ok": False, "error": str(e)}, status=503)
    return JsonResponse({"ok": True})


def time_now(request):
    now = datetime.now(timezone.utc).astimezone()
    return JsonResponse({"now": now.isoformat()})
