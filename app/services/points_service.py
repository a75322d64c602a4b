

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AppError, Conflict, InsufficientPoints, NotFound, ServerError, ValidationError
from app.models.points_transaction import PointsTransaction, PointsTransactionType
from app.models.user import User


logger = logging.getLogger(__name__)


class PointsService:
    """
    Points ledger.

    Every balance change is a single conditional UPDATE on ``users.points``
    followed by an appended ``PointsTransaction`` row, committed together.
    The balance is never read into Python, checked, and written back.
    """

    MAX_AMOUNT = 1_000_000

    @staticmethod
    def validate_amount(amount: int) -> None:
        """
        Validate a ledger amount.

        Raises:
            ValidationError: If amount is not a positive integer within bounds.
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("Points amount must be an integer")
        if amount <= 0:
            raise ValidationError("Points amount must be positive")
        if amount > PointsService.MAX_AMOUNT:
            raise ValidationError(f"Points amount cannot exceed {PointsService.MAX_AMOUNT}")

    @staticmethod
    async def get_balance(user_id: UUID, db: AsyncSession) -> int:
        """
        Read a user's current balance from the store.

        Raises:
            NotFound: If the user does not exist.
        """
        result = await db.execute(select(User.points).where(User.id == user_id))
        points = result.scalar_one_or_none()
        if points is None:
            raise NotFound("User not found")
        return points

    @staticmethod
    async def try_debit(
        user_id: UUID,
        amount: int,
        db: AsyncSession,
        reason: Optional[str] = None,
        transaction_type: PointsTransactionType = PointsTransactionType.CONSUME,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Atomically deduct points if the balance covers the amount.

        Args:
            user_id: User to debit.
            amount: Positive number of points to remove.
            db: Database session.
            reason: Free-text reason stored on the ledger entry.
            transaction_type: Ledger entry type.
            metadata: Optional JSON metadata for the ledger entry.

        Returns:
            int: The balance after the debit.

        Raises:
            InsufficientPoints: If the balance is lower than amount.
            NotFound: If the user does not exist.
        """
        PointsService.validate_amount(amount)

        try:
            result = await db.execute(
                update(User)
                .where(User.id == user_id, User.points >= amount)
                .values(points=User.points - amount)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                available = (
                    await db.execute(select(User.points).where(User.id == user_id))
                ).scalar_one_or_none()
                await db.rollback()
                if available is None:
                    raise NotFound("User not found")
                logger.info(f"Insufficient points for user {user_id}: required {amount}, available {available}")
                raise InsufficientPoints(required=amount, available=available)

            new_balance = (
                await db.execute(select(User.points).where(User.id == user_id))
            ).scalar_one()

            db.add(PointsTransaction(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=-amount,
                balance_after=new_balance,
                reason=reason,
                transaction_metadata=metadata,
            ))
            await db.commit()

        except AppError:
            raise
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to deduct {amount} points from user {user_id}: {e}")
            raise ServerError("Failed to deduct points. Please try again.") from e

        logger.info(f"Deducted {amount} points from user {user_id}, new balance {new_balance}")
        return new_balance

    @staticmethod
    async def _reference_used(reference: str, user_id: UUID, db: AsyncSession) -> bool:
        """
        Check whether a credit reference was already applied to this user.

        Raises:
            Conflict: If the reference was used for a different user.
        """
        owner = (
            await db.execute(
                select(PointsTransaction.user_id).where(PointsTransaction.reference == reference)
            )
        ).scalar_one_or_none()
        if owner is None:
            return False
        if owner != user_id:
            logger.warning(f"Credit reference {reference} belongs to another user, refusing credit for {user_id}")
            raise Conflict("This reference was already used for another account")
        return True

    @staticmethod
    async def credit(
        user_id: UUID,
        amount: int,
        db: AsyncSession,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        transaction_type: PointsTransactionType = PointsTransactionType.PURCHASE,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> tuple[int, bool]:
        """
        Add points to a user's balance, at most once per reference.

        Args:
            user_id: User to credit.
            amount: Positive number of points to add.
            db: Database session.
            reason: Free-text reason stored on the ledger entry.
            reference: External id (e.g. Stripe checkout session id). A second
                credit with the same reference is a no-op.
            transaction_type: Ledger entry type.
            metadata: Optional JSON metadata for the ledger entry.

        Returns:
            tuple: (balance after the call, whether points were applied)

        Raises:
            NotFound: If the user does not exist.
            Conflict: If the reference was already used for another user.
        """
        PointsService.validate_amount(amount)

        if reference and await PointsService._reference_used(reference, user_id, db):
            logger.info(f"Credit reference {reference} already processed")
            return await PointsService.get_balance(user_id, db), False

        try:
            result = await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(points=User.points + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                raise NotFound("User not found")

            new_balance = (
                await db.execute(select(User.points).where(User.id == user_id))
            ).scalar_one()

            db.add(PointsTransaction(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=amount,
                balance_after=new_balance,
                reason=reason,
                reference=reference,
                transaction_metadata=metadata,
            ))
            # A concurrent credit with the same reference fails here on the
            # unique index and its balance update is rolled back with it.
            await db.flush()
            await db.commit()

        except IntegrityError as e:
            await db.rollback()
            if not reference or not await PointsService._reference_used(reference, user_id, db):
                logger.error(f"Failed to credit {amount} points to user {user_id}: {e}")
                raise ServerError("Failed to add points. Please try again.") from e
            logger.info(f"Credit reference {reference} was processed concurrently")
            return await PointsService.get_balance(user_id, db), False
        except AppError:
            raise
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to credit {amount} points to user {user_id}: {e}")
            raise ServerError("Failed to add points. Please try again.") from e

        logger.info(f"Credited {amount} points to user {user_id}, new balance {new_balance}")
        return new_balance, True

    @staticmethod
    async def get_history(
        user_id: UUID,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 50
    ) -> tuple[int, list[PointsTransaction]]:
        """
        Get ledger entries for a user, newest first.

        Returns:
            Tuple of (total_count, list_of_transactions).
        """
        total = (
            await db.execute(
                select(func.count(PointsTransaction.id)).where(PointsTransaction.user_id == user_id)
            )
        ).scalar_one()

        result = await db.execute(
            select(PointsTransaction)
            .where(PointsTransaction.user_id == user_id)
            .order_by(PointsTransaction.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return total, list(result.scalars().all())
