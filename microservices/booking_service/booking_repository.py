"""
Booking Service Data Repository

Partner service catalog - PostgreSQL (asyncpg)
Implements CatalogRepositoryProtocol from protocols.py
"""

import logging
from typing import Any, Dict, List, Optional

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

from .models import PartnerService, ServiceCategory

logger = logging.getLogger(__name__)


class BookingRepository:
    """Partner service catalog repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        if config is None:
            config = ConfigManager("booking_service")

        self.db = db or PostgresClient("booking_service", config=config)
        self.schema = config.settings.infra.postgres_schema
        self.services_table = "partner_services"

    async def initialize(self):
        """Initialize database connection"""
        await self.db.connect()
        logger.info("Booking repository initialized with PostgreSQL")

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Booking repository database connection closed")

    async def list_services(self, category: Optional[ServiceCategory] = None) -> List[PartnerService]:
        """Active partner services, ordered by title"""
        try:
            query = f'''
                SELECT id, partner_id, title, description, category, min_price, max_price,
                       currency, highlights, availability_notes, is_active
                FROM {self.schema}.{self.services_table}
                WHERE is_active = TRUE
            '''
            params: List[Any] = []
            if category:
                params.append(ServiceCategory(category).value)
                query += " AND category = $1"
            query += " ORDER BY title"

            async with self.db:
                results = await self.db.query(query, params)

            return [self._row_to_service(row) for row in results]

        except Exception as e:
            logger.error(f"Error listing partner services: {e}", exc_info=True)
            raise

    def _row_to_service(self, row: Dict[str, Any]) -> PartnerService:
        data = dict(row)
        data["id"] = str(data["id"])
        data["partner_id"] = str(data["partner_id"])
        data["highlights"] = list(data.get("highlights") or [])
        return PartnerService(**data)
