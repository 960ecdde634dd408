"""
Credit Service - Business Logic Layer

Per-member credit ledger for concierge requests.

Business Rules:
- A subscribed member's account is opened lazily with the tier's monthly credits
- Balances never go negative; every change appends exactly one transaction
- Metered debits are compare-and-swap on the balance, retried on conflict
- Unlimited tiers record usage without touching the balance
- Reconciliation: balance == sum of non-unlimited transaction amounts
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from microservices.membership_service.models import MemberContext, TierId
from microservices.membership_service.tier_catalog import (
    get_credits_by_tier,
    get_tier_by_id,
    is_unlimited_tier,
)

from .events.publishers import (
    publish_credit_added,
    publish_credit_allocated,
    publish_credit_consumed,
    publish_credit_reset,
)
from .models import (
    CREDIT_ADDITION_TYPES,
    CreditAccount,
    CreditBalanceResponse,
    CreditCheckResult,
    CreditOperationResult,
    CreditTransaction,
    MonthlyResetResult,
    ReconciliationReport,
    TransactionType,
)
from .protocols import (
    BalanceConflictError,
    CreditAccountNotFoundError,
    CreditRepositoryProtocol,
    CreditServiceError,
    EventBusProtocol,
    InsufficientCreditsError,
    InvalidCreditAmountError,
    InvalidTransactionTypeError,
)

logger = logging.getLogger(__name__)

INITIAL_ALLOCATION_DESCRIPTION = "Initial monthly credit allocation"
MONTHLY_RESET_DESCRIPTION = "Monthly credit allocation reset"
TIER_CHANGE_DESCRIPTION = "Allocation adjusted to current tier"

# Resolves a user's current tier, None for non-subscribers
TierLookup = Callable[[str], Awaitable[Optional[TierId]]]

# Given the account just read, returns (new_balance, transaction fields)
BalanceDecision = Callable[[CreditAccount], Tuple[int, dict]]


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidCreditAmountError(f"Amount must be a positive integer, got {amount!r}")


class CreditService:
    """
    Credit ledger operations.

    Operations that mutate the ledger return CreditOperationResult and never
    raise for domain failures. Read helpers raise CreditServiceError subclasses.
    """

    def __init__(
        self,
        repository: CreditRepositoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        max_cas_attempts: int = 5,
        retry_wait=None,
    ):
        """
        Initialize credit service with injected dependencies

        Args:
            repository: Ledger persistence
            event_bus: Optional event bus for publishing events
            max_cas_attempts: Attempts at a conflicting balance change before giving up
            retry_wait: tenacity wait strategy between attempts
        """
        self.repository = repository
        self.event_bus = event_bus
        self.max_cas_attempts = max(1, max_cas_attempts)
        self.retry_wait = retry_wait or wait_random_exponential(multiplier=0.01, max=0.5)

        logger.info("CreditService initialized with dependency injection")

    # ====================
    # Accounts
    # ====================

    async def fetch_credits(self, member: MemberContext) -> Optional[CreditAccount]:
        """
        Get the member's account, opening it on first use.

        Returns None for a non-subscriber without an account.
        """
        account = await self.repository.get_account(member.user_id)
        if account is not None:
            if member.is_member and not is_unlimited_tier(member.tier):
                account = await self._align_allocation(member, account)
            return account

        if not member.is_member:
            return None

        tier = get_tier_by_id(member.tier)
        account, created = await self.repository.get_or_create_account(
            member.user_id, tier.monthly_credits, INITIAL_ALLOCATION_DESCRIPTION
        )
        if created:
            logger.info(f"Opened credit account for {member.user_id} ({tier.id.value}): {account.balance} credits")
            await publish_credit_allocated(
                self.event_bus, member.user_id, account.balance, account.balance, tier=tier.id.value
            )
        return account

    async def _align_allocation(self, member: MemberContext, account: CreditAccount) -> CreditAccount:
        """
        Shrink an allocation granted under a larger tier to the current tier's.

        An account opened on an unlimited tier holds its display allocation;
        after a move to a metered tier only the current tier's share of it is
        spendable. The excess leaves the balance (never below zero) through an
        allocation transaction, so reconciliation still holds.
        """
        allocation = get_credits_by_tier(member.tier)
        if account.monthly_allocation <= allocation:
            return account

        def trim(current: CreditAccount) -> Tuple[int, dict]:
            excess = max(0, current.monthly_allocation - allocation)
            new_balance = max(0, current.balance - excess)
            return new_balance, {
                "amount": new_balance - current.balance,
                "transaction_type": TransactionType.ALLOCATION.value,
                "description": TIER_CHANGE_DESCRIPTION,
                "metadata": {"previous_allocation": current.monthly_allocation, "tier": member.tier.value},
            }

        account, transaction = await self._change_balance(member.user_id, trim, monthly_allocation=allocation)
        logger.info(
            f"Aligned allocation for {member.user_id} to {member.tier.value}: "
            f"{allocation} monthly, balance {account.balance}"
        )
        await publish_credit_reset(self.event_bus, transaction, allocation)
        return account

    async def get_balance(self, member: MemberContext) -> CreditBalanceResponse:
        account = await self.fetch_credits(member)
        unlimited = member.is_member and is_unlimited_tier(member.tier)
        if account is None:
            return CreditBalanceResponse(user_id=member.user_id, has_account=False, is_unlimited=unlimited)
        return CreditBalanceResponse(
            user_id=member.user_id,
            has_account=True,
            balance=account.balance,
            monthly_allocation=account.monthly_allocation,
            is_unlimited=unlimited,
            last_allocation_at=account.last_allocation_at,
        )

    async def check_credits(self, member: MemberContext, required: int) -> CreditCheckResult:
        """Whether the member can pay `required` credits right now"""
        account = await self.fetch_credits(member)
        balance = account.balance if account else 0
        if member.is_member and is_unlimited_tier(member.tier):
            return CreditCheckResult(sufficient=True, balance=balance, is_unlimited=True)
        return CreditCheckResult(sufficient=balance >= required, balance=balance, is_unlimited=False)

    # ====================
    # Ledger Mutations
    # ====================

    async def _change_balance(
        self,
        user_id: str,
        decide: BalanceDecision,
        allocation_at: Optional[datetime] = None,
        monthly_allocation: Optional[int] = None,
    ) -> Tuple[CreditAccount, CreditTransaction]:
        """
        Read, decide and compare-and-swap until the write lands.

        The account is re-read and the decision re-made on every attempt, so
        sufficiency is always judged against the balance actually replaced.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_cas_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(BalanceConflictError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                account = await self.repository.get_account(user_id)
                if account is None:
                    raise CreditAccountNotFoundError(f"No credit account for user {user_id}")

                new_balance, transaction = decide(account)
                result = await self.repository.apply_balance_change(
                    user_id,
                    account.balance,
                    new_balance,
                    transaction,
                    allocation_at=allocation_at,
                    monthly_allocation=monthly_allocation,
                )
                if result is None:
                    raise BalanceConflictError(f"Balance for user {user_id} changed concurrently")
                return result

    async def use_credit(
        self,
        member: MemberContext,
        amount: int,
        description: str,
        service_request_id: Optional[str] = None,
    ) -> CreditOperationResult:
        """Debit credits, or record unlimited usage for unlimited tiers"""
        try:
            _validate_amount(amount)

            account = await self.fetch_credits(member)
            if account is None:
                raise CreditAccountNotFoundError(f"No credit account for user {member.user_id}")

            if member.is_member and is_unlimited_tier(member.tier):
                transaction = await self.repository.record_transaction(
                    member.user_id,
                    -amount,
                    TransactionType.USAGE.value,
                    account.balance,
                    description=description,
                    service_request_id=service_request_id,
                    metadata={"unlimited": True},
                )
                await publish_credit_consumed(self.event_bus, transaction)
                return CreditOperationResult(
                    success=True, balance=account.balance, is_unlimited=True, transaction=transaction
                )

            def debit(current: CreditAccount) -> Tuple[int, dict]:
                if current.balance < amount:
                    raise InsufficientCreditsError(
                        "Insufficient credits", available=current.balance, required=amount
                    )
                return current.balance - amount, {
                    "amount": -amount,
                    "transaction_type": TransactionType.USAGE.value,
                    "description": description,
                    "service_request_id": service_request_id,
                }

            account, transaction = await self._change_balance(member.user_id, debit)
            logger.info(f"Used {amount} credits for {member.user_id}, balance {account.balance}")
            await publish_credit_consumed(self.event_bus, transaction)
            return CreditOperationResult(success=True, balance=account.balance, transaction=transaction)

        except CreditServiceError as e:
            logger.warning(f"use_credit failed for {member.user_id}: {e}")
            return CreditOperationResult(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"use_credit error for {member.user_id}: {e}", exc_info=True)
            return CreditOperationResult(
                success=False, error="Failed to use credits", error_code=CreditServiceError.error_code
            )

    async def add_credits(
        self,
        member: Union[MemberContext, str],
        amount: int,
        transaction_type: Union[TransactionType, str],
        description: str,
    ) -> CreditOperationResult:
        """Credit a purchase, bonus or refund to an existing account"""
        user_id = member.user_id if isinstance(member, MemberContext) else member
        try:
            _validate_amount(amount)
            try:
                txn_type = TransactionType(transaction_type)
            except ValueError:
                raise InvalidTransactionTypeError(f"Invalid transaction type: {transaction_type}")
            if txn_type not in CREDIT_ADDITION_TYPES:
                raise InvalidTransactionTypeError(f"Cannot add credits with type {txn_type.value}")

            def credit(current: CreditAccount) -> Tuple[int, dict]:
                return current.balance + amount, {
                    "amount": amount,
                    "transaction_type": txn_type.value,
                    "description": description,
                }

            account, transaction = await self._change_balance(user_id, credit)
            logger.info(f"Added {amount} credits ({txn_type.value}) for {user_id}, balance {account.balance}")
            await publish_credit_added(self.event_bus, transaction)
            return CreditOperationResult(success=True, balance=account.balance, transaction=transaction)

        except CreditServiceError as e:
            logger.warning(f"add_credits failed for {user_id}: {e}")
            return CreditOperationResult(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"add_credits error for {user_id}: {e}", exc_info=True)
            return CreditOperationResult(
                success=False, error="Failed to add credits", error_code=CreditServiceError.error_code
            )

    # ====================
    # History & Audit
    # ====================

    async def get_transactions(self, user_id: str, limit: int = 20, offset: int = 0) -> List[CreditTransaction]:
        return await self.repository.list_transactions(user_id, limit=limit, offset=offset)

    async def credits_charged_for_request(self, user_id: str, service_request_id: str) -> int:
        """Metered credits debited for a request; unlimited usage counts as zero"""
        return -await self.repository.sum_usage_for_request(user_id, service_request_id)

    async def reconcile(self, user_id: str) -> ReconciliationReport:
        """Compare the stored balance against the ledger"""
        account = await self.repository.get_account(user_id)
        if account is None:
            raise CreditAccountNotFoundError(f"No credit account for user {user_id}")

        summary = await self.repository.summarize_transactions(user_id)
        report = ReconciliationReport(
            user_id=user_id,
            balance=account.balance,
            ledger_sum=summary["ledger_sum"],
            unlimited_usage_total=summary["unlimited_usage_total"],
            transaction_count=summary["count"],
            balanced=summary["ledger_sum"] == account.balance,
        )
        if not report.balanced:
            logger.error(
                f"Ledger mismatch for {user_id}: balance {report.balance}, ledger {report.ledger_sum}"
            )
        return report

    # ====================
    # Scheduled Jobs
    # ====================

    async def reset_monthly_credits(
        self, tier_lookup: TierLookup, now: Optional[datetime] = None
    ) -> MonthlyResetResult:
        """
        Reset every metered member's balance to their tier's monthly credits.

        Args:
            tier_lookup: Async lookup of a user's current tier (None if not subscribed)
            now: Allocation timestamp, defaults to the current time

        Returns:
            MonthlyResetResult with processed/skipped/errors counts
        """
        now = now or datetime.now(timezone.utc)
        result = MonthlyResetResult()

        for account in await self.repository.list_accounts():
            try:
                tier_id = await tier_lookup(account.user_id)
                if tier_id is None or is_unlimited_tier(tier_id):
                    result.skipped += 1
                    continue

                allocation = get_credits_by_tier(tier_id)

                def reset(current: CreditAccount) -> Tuple[int, dict]:
                    return allocation, {
                        "amount": allocation - current.balance,
                        "transaction_type": TransactionType.ALLOCATION.value,
                        "description": MONTHLY_RESET_DESCRIPTION,
                    }

                _, transaction = await self._change_balance(account.user_id, reset, allocation_at=now)
                await publish_credit_reset(self.event_bus, transaction, allocation)
                result.processed += 1

            except Exception as e:
                result.errors += 1
                logger.error(f"Monthly reset failed for {account.user_id}: {e}", exc_info=True)

        logger.info(
            f"Monthly credit reset: processed={result.processed} skipped={result.skipped} errors={result.errors}"
        )
        return result


__all__ = [
    "CreditService",
    "INITIAL_ALLOCATION_DESCRIPTION",
    "MONTHLY_RESET_DESCRIPTION",
    "TIER_CHANGE_DESCRIPTION",
]
