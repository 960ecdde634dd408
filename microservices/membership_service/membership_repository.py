"""
Membership Service Data Repository

Read-only usage queries over the request and credit tables.
Implements MembershipRepositoryProtocol from protocols.py
"""

import logging
from datetime import datetime
from typing import Optional

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

logger = logging.getLogger(__name__)


class MembershipRepository:
    """Usage metrics repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        if config is None:
            config = ConfigManager("membership_service")

        self.db = db or PostgresClient("membership_service", config=config)
        self.schema = config.settings.infra.postgres_schema
        self.requests_table = "service_requests"
        self.transactions_table = "credit_transactions"
        self.credits_table = "user_credits"

    async def initialize(self):
        """Initialize database connection"""
        await self.db.connect()
        logger.info("Membership repository initialized with PostgreSQL")

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Membership repository database connection closed")

    async def count_requests(
        self,
        client_id: str,
        start: datetime,
        end: datetime,
        status: Optional[str] = None,
    ) -> int:
        """Count requests created in [start, end)"""
        try:
            query = f'''
                SELECT COUNT(*) AS total FROM {self.schema}.{self.requests_table}
                WHERE client_id = $1 AND created_at >= $2 AND created_at < $3
            '''
            params = [client_id, start, end]
            if status:
                query += " AND status = $4"
                params.append(status)

            async with self.db:
                result = await self.db.query_row(query, params)

            return int(result["total"]) if result else 0

        except Exception as e:
            logger.error(f"Error counting requests for {client_id}: {e}", exc_info=True)
            raise

    async def sum_credit_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        """Sum of abs(amount) over usage transactions in [start, end)"""
        try:
            query = f'''
                SELECT COALESCE(SUM(ABS(amount)), 0) AS used
                FROM {self.schema}.{self.transactions_table}
                WHERE user_id = $1 AND transaction_type = 'usage'
                  AND created_at >= $2 AND created_at < $3
            '''

            async with self.db:
                result = await self.db.query_row(query, [user_id, start, end])

            return int(result["used"]) if result else 0

        except Exception as e:
            logger.error(f"Error summing credit usage for {user_id}: {e}", exc_info=True)
            raise

    async def get_credit_balance(self, user_id: str) -> Optional[int]:
        """Current balance or None"""
        try:
            query = f'''
                SELECT balance FROM {self.schema}.{self.credits_table}
                WHERE user_id = $1
            '''

            async with self.db:
                result = await self.db.query_row(query, [user_id])

            return int(result["balance"]) if result else None

        except Exception as e:
            logger.error(f"Error getting credit balance for {user_id}: {e}", exc_info=True)
            raise
