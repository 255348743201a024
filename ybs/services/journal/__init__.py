"""Transaction journal."""

from ybs.services.journal.transaction_journal import TransactionJournal

__all__ = ["TransactionJournal"]
