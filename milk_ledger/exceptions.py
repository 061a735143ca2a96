# milk_ledger/exceptions.py


def describe_customer(customer):
    """Short operator-facing label, e.g. 'Ramesh (4f1c...)'."""
    return f"{customer.name} ({customer.id})"


class LedgerError(Exception):
    """Base for every error the ledger surfaces to a caller.

    ``entity`` names the record the error concerns so an operator can retry
    that specific item.
    """

    def __init__(self, message, entity=None):
        super().__init__(message)
        self.message = message
        self.entity = entity

    def as_dict(self):
        data = {'error': self.message}
        if self.entity:
            data['entity'] = self.entity
        return data


class ValidationError(LedgerError):
    """Invalid input, rejected before any write."""


class NotFoundError(LedgerError):
    """Customer, delivery or payment does not exist."""


class CascadeIncompleteError(LedgerError):
    """A customer delete left dependent records behind, so the customer was kept."""

    def __init__(self, message, entity=None, failed_collections=()):
        super().__init__(message, entity=entity)
        self.failed_collections = list(failed_collections)

    def as_dict(self):
        data = super().as_dict()
        data['failed_collections'] = self.failed_collections
        return data


class NotificationError(LedgerError):
    """A notification could not be delivered. Never fatal to the write."""
