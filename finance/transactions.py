from dataclasses import dataclass
import datetime

from models import TRANSACTION_TYPES, Transaction
from finance.errors import ValidationError
from finance.fields import MISSING, Maybe, Patch, pick, present
from finance.gateway import OwnedGateway
from finance.validation import (
    is_blank,
    parse_calendar_date,
    parse_choice,
    parse_positive,
    parse_text,
)

REQUIRED_MESSAGE = 'All fields are required'
TYPE_MESSAGE = 'Type must be "expense" or "income"'
AMOUNT_MESSAGE = 'Amount must be a positive number'
DATE_MESSAGE = 'Invalid date'

transactions = OwnedGateway(Transaction, 'Transaction')


@dataclass
class TransactionPatch(Patch):
    ttype: Maybe[str] = MISSING
    category: Maybe[str] = MISSING
    description: Maybe[str] = MISSING
    amount: Maybe[float] = MISSING
    date: Maybe[datetime.date] = MISSING

    @classmethod
    def from_payload(cls, payload):
        patch = cls()
        ttype = pick(payload, 'type')
        if present(ttype):
            patch.ttype = parse_choice(ttype, TRANSACTION_TYPES, TYPE_MESSAGE)
        # both are required columns, so they can be changed but not cleared
        for key in ('category', 'description'):
            value = pick(payload, key)
            if present(value):
                label = key.capitalize()
                setattr(patch, key, parse_text(value, f'{label} cannot be empty', f'{label} must be text'))
        amount = pick(payload, 'amount')
        if present(amount):
            patch.amount = parse_positive(amount, AMOUNT_MESSAGE)
        tdate = pick(payload, 'date')
        if present(tdate):
            patch.date = parse_calendar_date(tdate, DATE_MESSAGE)
        return patch


def create_transaction(owner_id, payload):
    required = ('type', 'category', 'description', 'amount', 'date')
    if any(is_blank(payload.get(key)) for key in required):
        raise ValidationError(REQUIRED_MESSAGE)

    patch = TransactionPatch.from_payload({key: payload[key] for key in required})
    tx = Transaction(user_id=owner_id, **patch.changes())
    return transactions.add(tx)


def get_transaction(owner_id, raw_id):
    return transactions.get(owner_id, raw_id)


def update_transaction(owner_id, raw_id, payload):
    tx = transactions.get(owner_id, raw_id)
    patch = TransactionPatch.from_payload(payload)
    transactions.apply(tx, patch)
    return transactions.save(tx)


def delete_transaction(owner_id, raw_id):
    return transactions.delete(owner_id, raw_id)


def list_transactions(owner_id, ttype=None, start=None, end=None):
    """List the owner's transactions, newest first.

    ``ttype`` outside income/expense is ignored. ``start`` and ``end`` are
    inclusive and independent of each other.
    """
    query = transactions.query(owner_id)
    if ttype in TRANSACTION_TYPES:
        query = query.filter_by(ttype=ttype)
    if not is_blank(start):
        query = query.filter(Transaction.date >= parse_calendar_date(start, 'Invalid start date'))
    if not is_blank(end):
        query = query.filter(Transaction.date <= parse_calendar_date(end, 'Invalid end date'))
    return query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
