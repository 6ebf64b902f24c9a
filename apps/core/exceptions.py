"""
Typed errors raised by the CRM core.

Every error carries a machine-readable `code`, a human `message` and, where it
applies, the offending `field` and the violated `constraint`. The API layer
turns them into JSON bodies via `to_dict()`; nothing here ever exposes a
stack trace.

Hierarchy:
    CRMError
    ├── ValidationError         malformed / missing / out-of-range input
    ├── NotFound                unknown person, extension or relationship
    ├── ConstraintViolation     uniqueness, self-loop, role consistency, stale write
    │   ├── InvalidState        unrecognised status value for a role
    │   └── DuplicateEdge       (person_a, person_b, type) already recorded
    └── TransientStoreError     datastore timeout / connectivity, retryable
"""


class CRMError(Exception):
    code = 'error'
    status_code = 500

    def __init__(self, message, field=None, constraint=None, **details):
        super().__init__(message)
        self.message = message
        self.field = field
        self.constraint = constraint
        self.details = details

    def to_dict(self):
        data = {'code': self.code, 'message': self.message}
        if self.field is not None:
            data['field'] = self.field
        if self.constraint is not None:
            data['constraint'] = self.constraint
        if self.details:
            data['details'] = self.details
        return data


class ValidationError(CRMError):
    code = 'validation_error'
    status_code = 400


class NotFound(CRMError):
    code = 'not_found'
    status_code = 404

    @classmethod
    def for_object(cls, kind, object_id):
        return cls(f'{kind} {object_id} does not exist', kind=kind, id=str(object_id))


class ConstraintViolation(CRMError):
    code = 'constraint_violation'
    status_code = 409


class InvalidState(ConstraintViolation):
    code = 'invalid_state'


class DuplicateEdge(ConstraintViolation):
    code = 'duplicate_edge'


class TransientStoreError(CRMError):
    code = 'transient_store_error'
    status_code = 503
    retryable = True
