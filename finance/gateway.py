import re

from models import db
from finance.errors import NotFoundError, ValidationError
from finance.fields import Patch

_ID_PATTERN = re.compile(r'[0-9]+')
# largest value a SQLite INTEGER primary key can hold
MAX_ID = 2 ** 63 - 1


def parse_id(raw) -> int:
    """Accept only plain digit strings, so '12a' or '-1' never reach the database."""
    if raw is None or not _ID_PATTERN.fullmatch(str(raw)):
        raise ValidationError('Invalid id')
    return int(raw)


class OwnedGateway:
    """Ownership-scoped access to one model with a ``user_id`` column.

    A record owned by someone else is reported exactly like a missing one.
    """

    def __init__(self, model, label):
        self.model = model
        self.label = label

    def query(self, owner_id):
        return self.model.query.filter_by(user_id=owner_id)

    def get(self, owner_id, raw_id):
        record_id = parse_id(raw_id)
        record = db.session.get(self.model, record_id) if record_id <= MAX_ID else None
        if record is None or record.user_id != owner_id:
            raise NotFoundError(f'{self.label} not found')
        return record

    def add(self, record):
        db.session.add(record)
        db.session.commit()
        return record

    def apply(self, record, patch: Patch):
        for name, value in patch.changes().items():
            setattr(record, name, value)
        return record

    def save(self, record):
        db.session.commit()
        return record

    def delete(self, owner_id, raw_id):
        record = self.get(owner_id, raw_id)
        db.session.delete(record)
        db.session.commit()
        return record
