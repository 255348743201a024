"""Balance audit service (admin surface)."""

from ybs.services.balance.balance_ledger import BalanceAudit, BalanceLedger
from ybs.services.base_service import BaseService, ledger_operation


class BalanceAuditService(BaseService):
    """Read-only invariant checks for user balances."""

    @ledger_operation
    async def audit_user(self, user_id: int) -> BalanceAudit:
        """
        Audit one user's balance fields.

        Args:
            user_id: User ID

        Returns:
            ServiceResult with a BalanceAudit
        """
        async with self.uow_factory() as uow:
            return await BalanceLedger(uow).audit(user_id)
