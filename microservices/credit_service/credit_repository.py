"""
Credit Service Data Repository

Data access layer - PostgreSQL (asyncpg)
Implements CreditRepositoryProtocol from protocols.py

Schema:
    user_credits(user_id PRIMARY KEY, balance INT CHECK (balance >= 0),
                 monthly_allocation INT, last_allocation_at, created_at, updated_at)
    credit_transactions(id UUID PRIMARY KEY, user_id, amount INT, transaction_type,
                        description, service_request_id, balance_after INT,
                        metadata JSONB, created_at)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

from .models import CreditAccount, CreditTransaction, TransactionType

logger = logging.getLogger(__name__)


class CreditRepository:
    """Credit ledger repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        if config is None:
            config = ConfigManager("credit_service")

        self.db = db or PostgresClient("credit_service", config=config)
        self.schema = config.settings.infra.postgres_schema
        self.accounts_table = "user_credits"
        self.transactions_table = "credit_transactions"

    async def initialize(self):
        """Initialize database connection"""
        await self.db.connect()
        logger.info("Credit repository initialized with PostgreSQL")

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Credit repository database connection closed")

    # ====================
    # Accounts
    # ====================

    async def get_account(self, user_id: str) -> Optional[CreditAccount]:
        """Get account by user"""
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.accounts_table}
                WHERE user_id = $1
            '''

            async with self.db:
                result = await self.db.query_row(query, [user_id])

            return CreditAccount(**result) if result else None

        except Exception as e:
            logger.error(f"Error getting credit account for {user_id}: {e}", exc_info=True)
            raise

    async def get_or_create_account(
        self, user_id: str, allocation: int, description: str
    ) -> Tuple[CreditAccount, bool]:
        """Insert-if-absent plus opening allocation, in one transaction"""
        now = datetime.now(timezone.utc)
        try:
            async with self.db.transaction() as tx:
                created = await tx.query_row(
                    f'''
                    INSERT INTO {self.schema}.{self.accounts_table} (
                        user_id, balance, monthly_allocation, last_allocation_at, created_at, updated_at
                    ) VALUES ($1, $2, $2, $3, $3, $3)
                    ON CONFLICT (user_id) DO NOTHING
                    RETURNING *
                    ''',
                    [user_id, allocation, now],
                )

                if created is None:
                    existing = await tx.query_row(
                        f"SELECT * FROM {self.schema}.{self.accounts_table} WHERE user_id = $1",
                        [user_id],
                    )
                    return CreditAccount(**existing), False

                await self._insert_transaction(
                    tx,
                    user_id=user_id,
                    amount=allocation,
                    transaction_type=TransactionType.ALLOCATION.value,
                    balance_after=allocation,
                    description=description,
                    created_at=now,
                )

            logger.info(f"Created credit account for {user_id} with {allocation} credits")
            return CreditAccount(**created), True

        except Exception as e:
            logger.error(f"Error creating credit account for {user_id}: {e}", exc_info=True)
            raise

    async def list_accounts(self) -> List[CreditAccount]:
        """All accounts"""
        try:
            query = f"SELECT * FROM {self.schema}.{self.accounts_table} ORDER BY user_id"

            async with self.db:
                results = await self.db.query(query)

            return [CreditAccount(**row) for row in results]

        except Exception as e:
            logger.error(f"Error listing credit accounts: {e}", exc_info=True)
            raise

    # ====================
    # Balance Changes
    # ====================

    async def apply_balance_change(
        self,
        user_id: str,
        expected_balance: int,
        new_balance: int,
        transaction: Dict[str, Any],
        allocation_at: Optional[datetime] = None,
        monthly_allocation: Optional[int] = None,
    ) -> Optional[Tuple[CreditAccount, CreditTransaction]]:
        """Conditional balance update and its transaction, committed together"""
        now = datetime.now(timezone.utc)
        if allocation_at is not None and monthly_allocation is None:
            monthly_allocation = new_balance

        assignments = ["balance = $3", "updated_at = $4"]
        params: List[Any] = [user_id, expected_balance, new_balance, now]
        if allocation_at is not None:
            params.append(allocation_at)
            assignments.append(f"last_allocation_at = ${len(params)}")
        if monthly_allocation is not None:
            params.append(monthly_allocation)
            assignments.append(f"monthly_allocation = ${len(params)}")

        try:
            async with self.db.transaction() as tx:
                updated = await tx.query_row(
                    f'''
                    UPDATE {self.schema}.{self.accounts_table}
                    SET {", ".join(assignments)}
                    WHERE user_id = $1 AND balance = $2
                    RETURNING *
                    ''',
                    params,
                )

                if updated is None:
                    logger.debug(f"Balance conflict for {user_id}: expected {expected_balance}")
                    return None

                record = await self._insert_transaction(
                    tx,
                    user_id=user_id,
                    amount=transaction["amount"],
                    transaction_type=transaction["transaction_type"],
                    balance_after=new_balance,
                    description=transaction.get("description"),
                    service_request_id=transaction.get("service_request_id"),
                    metadata=transaction.get("metadata"),
                    created_at=now,
                )

            return CreditAccount(**updated), record

        except Exception as e:
            logger.error(f"Error changing balance for {user_id}: {e}", exc_info=True)
            raise

    # ====================
    # Transactions
    # ====================

    async def _insert_transaction(
        self,
        conn,
        user_id: str,
        amount: int,
        transaction_type: str,
        balance_after: int,
        description: Optional[str] = None,
        service_request_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> CreditTransaction:
        row = await conn.query_row(
            f'''
            INSERT INTO {self.schema}.{self.transactions_table} (
                id, user_id, amount, transaction_type, description,
                service_request_id, balance_after, metadata, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING *
            ''',
            [
                str(uuid.uuid4()),
                user_id,
                amount,
                transaction_type,
                description,
                service_request_id,
                balance_after,
                metadata or {},
                created_at or datetime.now(timezone.utc),
            ],
        )
        return self._row_to_transaction(row)

    async def record_transaction(
        self,
        user_id: str,
        amount: int,
        transaction_type: str,
        balance_after: int,
        description: Optional[str] = None,
        service_request_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreditTransaction:
        """Append a transaction without a balance change"""
        try:
            async with self.db:
                return await self._insert_transaction(
                    self.db,
                    user_id=user_id,
                    amount=amount,
                    transaction_type=transaction_type,
                    balance_after=balance_after,
                    description=description,
                    service_request_id=service_request_id,
                    metadata=metadata,
                )
        except Exception as e:
            logger.error(f"Error recording transaction for {user_id}: {e}", exc_info=True)
            raise

    async def list_transactions(self, user_id: str, limit: int = 20, offset: int = 0) -> List[CreditTransaction]:
        """Transactions newest first"""
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.transactions_table}
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT $2 OFFSET $3
            '''

            async with self.db:
                results = await self.db.query(query, [user_id, limit, offset])

            return [self._row_to_transaction(row) for row in results]

        except Exception as e:
            logger.error(f"Error listing transactions for {user_id}: {e}", exc_info=True)
            raise

    async def summarize_transactions(self, user_id: str) -> Dict[str, int]:
        """Ledger sum excluding unlimited usage, plus the unlimited total"""
        try:
            query = f'''
                SELECT
                    COALESCE(SUM(amount) FILTER (
                        WHERE NOT COALESCE((metadata->>'unlimited')::boolean, false)
                    ), 0) AS ledger_sum,
                    COALESCE(SUM(amount) FILTER (
                        WHERE COALESCE((metadata->>'unlimited')::boolean, false)
                    ), 0) AS unlimited_usage_total,
                    COUNT(*) AS count
                FROM {self.schema}.{self.transactions_table}
                WHERE user_id = $1
            '''

            async with self.db:
                result = await self.db.query_row(query, [user_id])

            return {
                "ledger_sum": int(result["ledger_sum"]),
                "unlimited_usage_total": int(result["unlimited_usage_total"]),
                "count": int(result["count"]),
            }

        except Exception as e:
            logger.error(f"Error summarizing transactions for {user_id}: {e}", exc_info=True)
            raise

    async def sum_usage_for_request(self, user_id: str, service_request_id: str) -> int:
        """Sum of metered usage amounts recorded against a request (zero or negative)"""
        try:
            query = f'''
                SELECT COALESCE(SUM(amount), 0) AS total
                FROM {self.schema}.{self.transactions_table}
                WHERE user_id = $1 AND service_request_id = $2 AND transaction_type = $3
                  AND NOT COALESCE((metadata->>'unlimited')::boolean, false)
            '''

            async with self.db:
                result = await self.db.query_row(query, [user_id, service_request_id, TransactionType.USAGE.value])

            return int(result["total"]) if result else 0

        except Exception as e:
            logger.error(f"Error summing usage for request {service_request_id}: {e}", exc_info=True)
            raise

    def _row_to_transaction(self, row: Dict[str, Any]) -> CreditTransaction:
        data = dict(row)
        data["id"] = str(data["id"])
        data["metadata"] = data.get("metadata") or {}
        return CreditTransaction(**data)
