"""
Standard type definitions for database models.

Provides a consistent type for monetary fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts and balances (KSH)
# Precision: 12 digits total, 2 after decimal point
# Range: up to 9,999,999,999.99
MoneyType = DECIMAL(12, 2)
