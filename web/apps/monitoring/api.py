from django.http import JsonResponse
from django.db import connection

from apps.notifications.http_adapters import _delivery_cb


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except Exception:
        db_ok = False

    # Push delivery is best effort: an open breaker degrades, never fails, health
    delivery_state = _delivery_cb.state

    ok = db_ok
    code = 200 if ok else 503
    return JsonResponse(
        {
            "ok": ok,
            "components": {
                "db": {"ok": db_ok},
                "notification_delivery": {"ok": delivery_state == "CLOSED", "circuit": delivery_state},
            },
        },
        status=code,
    )


def ping_view(_request):
    """Liveness: the process answers, whatever its dependencies."""
    return JsonResponse({"ok": True})
