"""Balance ledger helpers and audit."""

from ybs.services.balance.balance_audit_service import BalanceAuditService
from ybs.services.balance.balance_ledger import BalanceAudit, BalanceLedger

__all__ = ["BalanceAudit", "BalanceAuditService", "BalanceLedger"]
