"""HTTP views for the caller's notification feed.

Polling is the primary read contract: clients fetch the newest
notifications and the unread count, then mark them read.
"""

from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.api import IsMember, error_response
from apps.common.errors import Forbidden, MarketError, NotFound

from . import providers
from .schemas import NotificationReadDTO

MAX_LIMIT = 100


class NotificationsView(APIView):
    permission_classes = [IsMember]

    def get(self, request):
        try:
            limit = int(request.GET.get("limit", 20))
        except ValueError:
            limit = 20
        limit = max(1, min(limit, MAX_LIMIT))
        unread_only = request.GET.get("unread") in ("1", "true", "yes")

        dispatcher = providers.get_notification_dispatcher()
        rows = dispatcher.list_for_recipient(request.user.user_id, limit=limit, unread_only=unread_only)
        return Response(
            {
                "unread": dispatcher.unread_count(request.user.user_id),
                "results": [NotificationReadDTO.from_domain(n).model_dump(mode="json") for n in rows],
            },
            status=200,
        )


class MarkReadView(APIView):
    permission_classes = [IsMember]

    def post(self, request, notification_id):
        dispatcher = providers.get_notification_dispatcher()
        try:
            n = dispatcher.get(str(notification_id))
            if n is None:
                raise NotFound(str(notification_id))
            if n.recipient_id != request.user.user_id:
                raise Forbidden(str(notification_id))
            dispatcher.mark_read(n.id)
        except MarketError as e:
            return error_response(e)
        return Response({"id": n.id, "read": True}, status=200)


class MarkAllReadView(APIView):
    permission_classes = [IsMember]

    def post(self, request):
        changed = providers.get_notification_dispatcher().mark_all_read(request.user.user_id)
        return Response({"marked": changed}, status=200)
