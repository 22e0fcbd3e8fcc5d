"""Financial summary and the rolling monthly chart."""
import pandas as pd

from models import EXPENSE, INCOME, Transaction
from finance import dates
from finance.transactions import transactions

CHART_MONTHS = 6


def summary(owner_id):
    # recomputed from a full scan on every call
    rows = transactions.query(owner_id).all()
    income = sum(t.amount for t in rows if t.ttype == INCOME)
    expenses = sum(t.amount for t in rows if t.ttype == EXPENSE)
    return {
        'income': float(income),
        'expenses': float(expenses),
        'balance': float(income - expenses),
        'transactionCount': len(rows),
    }


def month_window(today=None, months=CHART_MONTHS):
    """Calendar months ending with the current one, oldest first."""
    current = pd.Period(pd.Timestamp(today or dates.today()), freq='M')
    return pd.period_range(end=current, periods=months, freq='M')


def monthly_chart(owner_id, today=None):
    window = month_window(today)
    buckets = [
        {
            'month': period.month,
            'year': period.year,
            'label': period.strftime('%b'),
            'income': 0.0,
            'expenses': 0.0,
        }
        for period in window
    ]
    by_month = {(b['year'], b['month']): b for b in buckets}

    start = window[0].start_time.date()
    rows = (
        transactions.query(owner_id)
        .filter(Transaction.date >= start)
        .order_by(Transaction.date.asc())
        .all()
    )
    for tx in rows:
        bucket = by_month.get((tx.date.year, tx.date.month))
        if bucket is None:
            continue
        key = 'income' if tx.ttype == INCOME else 'expenses'
        bucket[key] += tx.amount
    return buckets
