"""
Ledger services.

Public operations return ServiceResult; internal helpers raise
LedgerError subclasses inside a unit of work.
"""

from ybs.services.base_service import BaseService, ServiceResult, ledger_operation

__all__ = ["BaseService", "ServiceResult", "ledger_operation"]
