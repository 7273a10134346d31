"""
Short identifier allocation.

Two kinds of codes are handed out:
    user      4-digit account code in [1000, 9999]
    shipment  "SHP" followed by a 6-digit number in [100000, 999999]

A candidate is drawn uniformly at random and looked up in the store; a hit
means draw again. The lookup alone does not reserve anything, so two
concurrent requests can both see the same code as free. `insert_with_identifier`
closes that gap with the column's unique constraint: the row is committed and
an IntegrityError caused by the identifier column sends the caller back for a
new candidate.

Retries are unbounded unless `id_allocation_max_attempts` is set. With no cap
a saturated code space makes allocation loop forever.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shipment_backend.app.core.config import settings
from shipment_backend.app.core.exceptions import IdentifierExhaustedError
from shipment_backend.app.db.session import Base
from shipment_backend.app.models.shipment import Shipment
from shipment_backend.app.models.user import User

logger = logging.getLogger(__name__)

Identifier = Union[int, str]


@dataclass(frozen=True)
class IdentifierKind:
    """Range, format and storage column of one family of identifiers."""
    name: str
    low: int
    high: int
    model: type
    attribute: str
    prefix: str = ""
    
    def format(self, number: int) -> Identifier:
        if self.prefix:
            return f"{self.prefix}{number}"
        return number
    
    def contains(self, value: Identifier) -> bool:
        if self.prefix:
            if not isinstance(value, str) or not value.startswith(self.prefix):
                return False
            digits = value[len(self.prefix):]
            if not digits.isdigit():
                return False
            value = int(digits)
        return isinstance(value, int) and self.low <= value <= self.high
    
    @property
    def column(self):
        return getattr(self.model, self.attribute)


USER_ID = IdentifierKind(name="user", low=1000, high=9999, model=User, attribute="user_id")
SHIPMENT_ID = IdentifierKind(name="shipment", low=100000, high=999999, model=Shipment, attribute="id", prefix="SHP")


def generate_candidate(kind: IdentifierKind) -> Identifier:
    """Draw one identifier uniformly from the kind's range."""
    return kind.format(random.randint(kind.low, kind.high))


async def is_taken(db: AsyncSession, kind: IdentifierKind, value: Identifier) -> bool:
    result = await db.execute(select(kind.column).where(kind.column == value).limit(1))
    return result.first() is not None


def _attempt_limit(max_attempts: Optional[int]) -> Optional[int]:
    if max_attempts is not None:
        return max_attempts
    return settings.id_allocation_max_attempts


async def allocate_identifier(
    db: AsyncSession,
    kind: IdentifierKind,
    max_attempts: Optional[int] = None
) -> Identifier:
    """
    Return an identifier that is not present in the store at the time of the check.
    
    The value is not reserved. Use `insert_with_identifier` when the row is
    written right away.
    
    Raises:
        IdentifierExhaustedError: when a cap is configured and reached
        SQLAlchemyError: when the lookup itself fails
    """
    limit = _attempt_limit(max_attempts)
    attempts = 0
    while limit is None or attempts < limit:
        attempts += 1
        candidate = generate_candidate(kind)
        if not await is_taken(db, kind, candidate):
            return candidate
        logger.debug("%s identifier %s already taken, drawing again", kind.name, candidate)
    raise IdentifierExhaustedError(kind.name, attempts)


async def insert_with_identifier(
    db: AsyncSession,
    kind: IdentifierKind,
    build: Callable[[Identifier], Base],
    max_attempts: Optional[int] = None
) -> Any:
    """
    Build a row around a fresh identifier and commit it.
    
    `build` receives the candidate and returns an unsaved model instance. The
    session must not hold other pending changes: a collision rolls the
    transaction back before the next attempt.
    
    Raises:
        IdentifierExhaustedError: when a cap is configured and reached
        IntegrityError: for constraint violations not caused by the identifier
    """
    limit = _attempt_limit(max_attempts)
    attempts = 0
    while limit is None or attempts < limit:
        attempts += 1
        candidate = generate_candidate(kind)
        if await is_taken(db, kind, candidate):
            logger.debug("%s identifier %s already taken, drawing again", kind.name, candidate)
            continue
        
        row = build(candidate)
        db.add(row)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if await is_taken(db, kind, candidate):
                logger.info("%s identifier %s claimed by a concurrent insert, retrying", kind.name, candidate)
                continue
            raise
        
        await db.refresh(row)
        return row
    
    raise IdentifierExhaustedError(kind.name, attempts)
