"""Django ORM repository for token accounts.

The conditional write is a single ``UPDATE ... WHERE version = :expected``
statement, so the database arbitrates concurrent writers without holding
row locks across the read.
"""

from typing import List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .domain import TokenAccount, TokenAccountRepository
from .models import TokenAccountModel


def _to_domain(obj: TokenAccountModel) -> TokenAccount:
    return TokenAccount(
        student_id=obj.student_id,
        balance=obj.balance,
        version=obj.version,
        updated_at=obj.updated_at,
    )


class DjangoTokenAccountRepository(TokenAccountRepository):
    def get(self, student_id: str) -> Optional[TokenAccount]:
        obj = TokenAccountModel.objects.filter(student_id=student_id).first()
        return _to_domain(obj) if obj else None

    def create(self, account: TokenAccount) -> bool:
        try:
            with transaction.atomic():
                TokenAccountModel.objects.create(
                    student_id=account.student_id, balance=account.balance, version=account.version
                )
            return True
        except IntegrityError:
            return False

    def compare_and_set_balance(self, student_id: str, expected_version: int, balance: int) -> bool:
        updated = TokenAccountModel.objects.filter(student_id=student_id, version=expected_version).update(
            balance=balance, version=F("version") + 1, updated_at=timezone.now()
        )
        return updated == 1

    def student_ids(self) -> List[str]:
        return list(TokenAccountModel.objects.order_by("student_id").values_list("student_id", flat=True))
