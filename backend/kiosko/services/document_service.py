# Overview: Atomic receipt/document number allocation.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def allocate_document_number(*, document_type: str, prefix: str, pad: int = 6) -> str:
    """
    Allocate the next number inside the caller's transaction (no commit).

    The UPDATE ... SET next_number = next_number + 1 takes the row lock, so
    two transactions can never read the same value.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        db.session.add(seq)
        try:
            with db.session.begin_nested():
                db.session.flush()
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            current = (
                db.session.query(DocumentSequence.next_number)
                .filter_by(document_type=document_type)
                .scalar()
            )
            next_num = current - 1

    return f"{prefix}-{next_num:0{pad}d}"
