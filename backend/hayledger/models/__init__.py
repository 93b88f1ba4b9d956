from .inventory import Stack, Location, Transaction
from .dispatch import Ticket, Invoice, InvoiceSequence
from .preferences import UserPreference

__all__ = [
    'Stack', 'Location', 'Transaction',
    'Ticket', 'Invoice', 'InvoiceSequence',
    'UserPreference',
]
