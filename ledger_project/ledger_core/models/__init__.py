from .account import (AccountCategory, LedgerAccount, default_debit_normal)
from .auditlog import AuditLog
from .journal import EntryType, JournalEntry, JournalEntryLine, SourceKind
from .period import AccountingPeriod, PeriodType
from .quarry import Broker, Product, Quarry
from .sequence import JournalSequence
from .transactions import (Banking, Expense, PaymentStatus, Prepayment,
                           PrepaymentStatus, Sale)
