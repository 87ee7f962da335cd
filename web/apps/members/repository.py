from typing import List, Optional

from .domain import Member, MemberRepository, Role
from .models import MemberModel


def _to_domain(obj: MemberModel) -> Member:
    return Member(
        user_id=obj.user_id,
        role=Role(obj.role),
        email=obj.email,
        first_name=obj.first_name,
        last_name=obj.last_name,
        created_at=obj.created_at,
    )


class DjangoMemberRepository(MemberRepository):
    """Member profiles stored with the Django ORM."""

    def get(self, user_id: str) -> Optional[Member]:
        obj = MemberModel.objects.filter(user_id=user_id).first()
        return _to_domain(obj) if obj else None

    def save(self, member: Member) -> bool:
        _, created = MemberModel.objects.update_or_create(
            user_id=member.user_id,
            defaults={
                "role": member.role.value,
                "email": member.email,
                "first_name": member.first_name,
                "last_name": member.last_name,
            },
            create_defaults={
                "role": member.role.value,
                "email": member.email,
                "first_name": member.first_name,
                "last_name": member.last_name,
                "created_at": member.created_at,
            },
        )
        return created

    def list(self, role: Optional[Role] = None) -> List[Member]:
        qs = MemberModel.objects.all()
        if role is not None:
            qs = qs.filter(role=role.value)
        return [_to_domain(o) for o in qs.order_by("user_id")]
